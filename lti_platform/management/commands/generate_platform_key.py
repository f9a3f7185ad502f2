"""
Generate the RSA key pair the platform signs LTI 1.3 messages with.

    python manage.py generate_platform_key [--force]
"""
import uuid

from Cryptodome.PublicKey import RSA
from django.core.management.base import BaseCommand, CommandError

from lti_platform.models import PlatformConfiguration

KEY_SIZE = 2048


class Command(BaseCommand):
    help = "Generate the platform key ID and RSA private key used for LTI 1.3"

    def add_arguments(self, parser):
        parser.add_argument(
            '--force',
            action='store_true',
            help='Replace an existing key. Tools which cached the old public key will reject new messages.',
        )

    def handle(self, *args, **options):
        config = PlatformConfiguration.current()
        platform_options = dict(config.options or {})
        if platform_options.get('privatekey') and not options['force']:
            raise CommandError("A private key is already defined; use --force to replace it.")

        platform_options['kid'] = uuid.uuid4().hex
        platform_options['privatekey'] = RSA.generate(KEY_SIZE).export_key('PEM').decode('utf-8')
        config.options = platform_options
        config.save()
        self.stdout.write(self.style.SUCCESS(f"Created platform key kid={platform_options['kid']}"))
