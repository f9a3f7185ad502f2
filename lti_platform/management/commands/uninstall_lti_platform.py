"""
Delete all the data of the LTI Platform: tools and platform options.

Nothing is deleted unless the "Delete data on uninstall" option is set.

    python manage.py uninstall_lti_platform
"""
from django.core.management.base import BaseCommand

from lti_platform.config import PlatformSettings
from lti_platform.models import PlatformConfiguration, ToolRecord


class Command(BaseCommand):
    help = "Delete all LTI tools and platform options, when allowed by the uninstall option"

    def handle(self, *args, **options):
        if not PlatformSettings.load().uninstall:
            self.stdout.write("The uninstall option is not set; no data has been deleted.")
            return

        count, _deleted = ToolRecord.objects.all().delete()
        PlatformConfiguration.objects.all().delete()
        self.stdout.write(self.style.SUCCESS(f"Deleted {count} LTI tool(s) and the platform options."))
