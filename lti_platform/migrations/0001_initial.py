from django.db import migrations, models
import django.utils.timezone


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='ToolRecord',
            fields=[
                ('id', models.AutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('scope', models.CharField(choices=[('site', 'Site tool'), ('network', 'Network tool (shared by all sites)')], default='site', max_length=10)),
                ('site_id', models.PositiveIntegerField(db_index=True, default=1, help_text='Site owning the tool. Ignored for network tools.')),
                ('title', models.CharField(blank=True, help_text='Name of the tool.', max_length=255)),
                ('slug', models.CharField(db_index=True, help_text='Unique code of the tool, also used as the LTI 1.3 client ID.', max_length=200)),
                ('status', models.CharField(choices=[('publish', 'Enabled'), ('draft', 'Disabled'), ('trash', 'Trash')], db_index=True, default='draft', max_length=10)),
                ('content', models.TextField(blank=True, default='{}', help_text='JSON encoded tool settings.')),
                ('created', models.DateTimeField(default=django.utils.timezone.now)),
                ('modified', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'LTI tool',
                'verbose_name_plural': 'LTI tools',
                'ordering': ['slug'],
            },
        ),
        migrations.CreateModel(
            name='PlatformConfiguration',
            fields=[
                ('id', models.AutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('options', models.JSONField(blank=True, default=dict, help_text='Platform options: debug, uninstall, platformguid, privacy and presentation defaults, role mapping defaults (role_<name>), kid, privatekey and storage.')),
                ('changed', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'LTI platform configuration',
            },
        ),
    ]
