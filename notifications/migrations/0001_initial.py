import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Notification',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('title', models.CharField(max_length=200, verbose_name='Title')),
                ('message', models.TextField(blank=True, verbose_name='Message')),
                ('type', models.CharField(choices=[('info', 'Information'), ('success', 'Success'), ('warning', 'Warning'), ('reminder', 'Reminder'), ('escalation', 'Escalation')], default='info', max_length=16, verbose_name='Type')),
                ('related_type', models.CharField(blank=True, max_length=40, verbose_name='Related type')),
                ('related_id', models.PositiveBigIntegerField(blank=True, null=True, verbose_name='Related ID')),
                ('is_read', models.BooleanField(default=False, verbose_name='Read')),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True, verbose_name='Created at')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='notifications', to=settings.AUTH_USER_MODEL, verbose_name='Recipient')),
            ],
            options={
                'verbose_name': 'Notification',
                'verbose_name_plural': 'Notifications',
                'ordering': ('-created_at', '-id'),
                'indexes': [
                    models.Index(fields=['user', 'is_read'], name='ix_notification_unread'),
                    models.Index(fields=['related_type', 'related_id', 'type', 'created_at'], name='ix_notification_related'),
                ],
            },
        ),
    ]
