from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('leave', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='RequestNumberCounter',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('year', models.PositiveIntegerField(unique=True, verbose_name='Year')),
                ('last_number', models.PositiveIntegerField(default=0, verbose_name='Last number')),
            ],
            options={
                'verbose_name': 'Request number counter',
                'verbose_name_plural': 'Request number counters',
            },
        ),
    ]
