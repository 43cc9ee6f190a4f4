import concurrency.fields
import django.db.models.deletion
import simple_history.models
from django.conf import settings
from django.db import migrations, models


HISTORY_TYPES = [('+', 'Created'), ('~', 'Changed'), ('-', 'Deleted')]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('employees', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='LeaveRequest',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('request_number', models.CharField(blank=True, editable=False, max_length=32, unique=True, verbose_name='Request number')),
                ('start_date', models.DateField(verbose_name='Start')),
                ('end_date', models.DateField(verbose_name='End')),
                ('working_days', models.PositiveSmallIntegerField(default=0, editable=False, verbose_name='Working days')),
                ('year', models.PositiveIntegerField(verbose_name='Entitlement year')),
                ('replacement_name', models.CharField(blank=True, max_length=160, verbose_name='Replacement')),
                ('replacement_position', models.CharField(blank=True, max_length=160, verbose_name='Replacement position')),
                ('status', models.CharField(choices=[('draft', 'Draft'), ('pending_department_head', 'Awaiting department head'), ('approved', 'Approved'), ('rejected', 'Rejected')], db_index=True, default='draft', max_length=32, verbose_name='Status')),
                ('employee_signature', models.FileField(blank=True, editable=False, upload_to='signatures/leave/%Y/%m/', verbose_name='Employee signature')),
                ('employee_signed_at', models.DateTimeField(blank=True, editable=False, null=True, verbose_name='Employee signed at')),
                ('department_head_signature', models.FileField(blank=True, editable=False, upload_to='signatures/leave/%Y/%m/', verbose_name='Department head signature')),
                ('department_head_signed_at', models.DateTimeField(blank=True, editable=False, null=True, verbose_name='Department head signed at')),
                ('decision_capacity', models.CharField(blank=True, choices=[('department_head', 'Department head'), ('delegate', 'Delegate'), ('hr', 'HR override'), ('super_admin', 'Super-admin override')], editable=False, max_length=16, verbose_name='Decided as')),
                ('balance_override', models.BooleanField(default=False, editable=False, help_text='Set when the approver confirmed an approval the remaining balance did not cover.', verbose_name='Approved over balance')),
                ('rejected_at', models.DateTimeField(blank=True, editable=False, null=True, verbose_name='Rejected at')),
                ('rejection_reason', models.TextField(blank=True, verbose_name='Rejection reason')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated at')),
                ('version', concurrency.fields.AutoIncVersionField(default=0, help_text='record revision number')),
                ('dept_head', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='leave_requests_approved', to=settings.AUTH_USER_MODEL, verbose_name='Approved by')),
                ('employee', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='leave_requests', to='employees.employee', verbose_name='Employee')),
                ('rejected_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='leave_requests_rejected', to=settings.AUTH_USER_MODEL, verbose_name='Rejected by')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='leave_requests', to=settings.AUTH_USER_MODEL, verbose_name='Submitted by')),
            ],
            options={
                'verbose_name': 'Leave request',
                'verbose_name_plural': 'Leave requests',
                'ordering': ('-created_at', '-id'),
                'indexes': [
                    models.Index(fields=['status', 'created_at'], name='ix_leaverequest_status'),
                    models.Index(fields=['employee', 'year'], name='ix_leaverequest_employee_year'),
                ],
                'constraints': [
                    models.CheckConstraint(check=models.Q(('end_date__gte', models.F('start_date'))), name='ck_leaverequest_dates_order'),
                    models.CheckConstraint(
                        check=models.Q(
                            models.Q(('employee_signature', ''), ('employee_signed_at__isnull', True)),
                            models.Q(models.Q(('employee_signature', ''), _negated=True), ('employee_signed_at__isnull', False)),
                            _connector='OR',
                        ),
                        name='ck_leaverequest_employee_signature_pair',
                    ),
                    models.CheckConstraint(
                        check=models.Q(
                            models.Q(('department_head_signature', ''), ('department_head_signed_at__isnull', True)),
                            models.Q(models.Q(('department_head_signature', ''), _negated=True), ('department_head_signed_at__isnull', False)),
                            _connector='OR',
                        ),
                        name='ck_leaverequest_depthead_signature_pair',
                    ),
                    models.CheckConstraint(
                        check=models.Q(
                            models.Q(('status', 'rejected'), models.Q(('rejection_reason', ''), _negated=True)),
                            models.Q(models.Q(('status', 'rejected'), _negated=True), ('rejection_reason', '')),
                            _connector='OR',
                        ),
                        name='ck_leaverequest_rejection_reason',
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name='ApprovalDelegation',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('start_date', models.DateField(verbose_name='From')),
                ('end_date', models.DateField(verbose_name='Until')),
                ('reason', models.CharField(blank=True, default='concediu', max_length=160, verbose_name='Reason')),
                ('is_active', models.BooleanField(default=True, verbose_name='Active')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Created at')),
                ('delegate', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='approval_delegations_received', to=settings.AUTH_USER_MODEL, verbose_name='Delegate')),
                ('delegator', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='approval_delegations_given', to=settings.AUTH_USER_MODEL, verbose_name='Delegated by')),
                ('department', models.ForeignKey(blank=True, help_text='Leave empty to delegate for every department the delegator heads.', null=True, on_delete=django.db.models.deletion.CASCADE, related_name='approval_delegations', to='employees.department', verbose_name='Department')),
            ],
            options={
                'verbose_name': 'Approval delegation',
                'verbose_name_plural': 'Approval delegations',
                'ordering': ('-start_date',),
                'constraints': [
                    models.CheckConstraint(check=models.Q(('end_date__gte', models.F('start_date'))), name='ck_delegation_dates_order'),
                    models.CheckConstraint(check=models.Q(('delegator', models.F('delegate')), _negated=True), name='ck_delegation_not_self'),
                ],
            },
        ),

        # ---- history tables ----
        migrations.CreateModel(
            name='HistoricalLeaveRequest',
            fields=[
                ('id', models.BigIntegerField(auto_created=True, blank=True, db_index=True, verbose_name='ID')),
                ('request_number', models.CharField(blank=True, db_index=True, editable=False, max_length=32, verbose_name='Request number')),
                ('start_date', models.DateField(verbose_name='Start')),
                ('end_date', models.DateField(verbose_name='End')),
                ('working_days', models.PositiveSmallIntegerField(default=0, editable=False, verbose_name='Working days')),
                ('year', models.PositiveIntegerField(verbose_name='Entitlement year')),
                ('replacement_name', models.CharField(blank=True, max_length=160, verbose_name='Replacement')),
                ('replacement_position', models.CharField(blank=True, max_length=160, verbose_name='Replacement position')),
                ('status', models.CharField(choices=[('draft', 'Draft'), ('pending_department_head', 'Awaiting department head'), ('approved', 'Approved'), ('rejected', 'Rejected')], db_index=True, default='draft', max_length=32, verbose_name='Status')),
                ('employee_signature', models.TextField(blank=True, editable=False, max_length=100, verbose_name='Employee signature')),
                ('employee_signed_at', models.DateTimeField(blank=True, editable=False, null=True, verbose_name='Employee signed at')),
                ('department_head_signature', models.TextField(blank=True, editable=False, max_length=100, verbose_name='Department head signature')),
                ('department_head_signed_at', models.DateTimeField(blank=True, editable=False, null=True, verbose_name='Department head signed at')),
                ('decision_capacity', models.CharField(blank=True, choices=[('department_head', 'Department head'), ('delegate', 'Delegate'), ('hr', 'HR override'), ('super_admin', 'Super-admin override')], editable=False, max_length=16, verbose_name='Decided as')),
                ('balance_override', models.BooleanField(default=False, editable=False, help_text='Set when the approver confirmed an approval the remaining balance did not cover.', verbose_name='Approved over balance')),
                ('rejected_at', models.DateTimeField(blank=True, editable=False, null=True, verbose_name='Rejected at')),
                ('rejection_reason', models.TextField(blank=True, verbose_name='Rejection reason')),
                ('created_at', models.DateTimeField(blank=True, editable=False, verbose_name='Created at')),
                ('updated_at', models.DateTimeField(blank=True, editable=False, verbose_name='Updated at')),
                ('version', concurrency.fields.AutoIncVersionField(default=0, help_text='record revision number')),
                ('history_id', models.AutoField(primary_key=True, serialize=False)),
                ('history_date', models.DateTimeField(db_index=True)),
                ('history_change_reason', models.CharField(max_length=100, null=True)),
                ('history_type', models.CharField(choices=HISTORY_TYPES, max_length=1)),
                ('dept_head', models.ForeignKey(blank=True, db_constraint=False, null=True, on_delete=django.db.models.deletion.DO_NOTHING, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Approved by')),
                ('employee', models.ForeignKey(blank=True, db_constraint=False, null=True, on_delete=django.db.models.deletion.DO_NOTHING, related_name='+', to='employees.employee', verbose_name='Employee')),
                ('history_user', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('rejected_by', models.ForeignKey(blank=True, db_constraint=False, null=True, on_delete=django.db.models.deletion.DO_NOTHING, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Rejected by')),
                ('user', models.ForeignKey(blank=True, db_constraint=False, null=True, on_delete=django.db.models.deletion.DO_NOTHING, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Submitted by')),
            ],
            options={
                'verbose_name': 'historical Leave request',
                'verbose_name_plural': 'historical Leave requests',
                'ordering': ('-history_date', '-history_id'),
                'get_latest_by': ('history_date', 'history_id'),
            },
            bases=(simple_history.models.HistoricalChanges, models.Model),
        ),
        migrations.CreateModel(
            name='HistoricalApprovalDelegation',
            fields=[
                ('id', models.BigIntegerField(auto_created=True, blank=True, db_index=True, verbose_name='ID')),
                ('start_date', models.DateField(verbose_name='From')),
                ('end_date', models.DateField(verbose_name='Until')),
                ('reason', models.CharField(blank=True, default='concediu', max_length=160, verbose_name='Reason')),
                ('is_active', models.BooleanField(default=True, verbose_name='Active')),
                ('created_at', models.DateTimeField(blank=True, editable=False, verbose_name='Created at')),
                ('history_id', models.AutoField(primary_key=True, serialize=False)),
                ('history_date', models.DateTimeField(db_index=True)),
                ('history_change_reason', models.CharField(max_length=100, null=True)),
                ('history_type', models.CharField(choices=HISTORY_TYPES, max_length=1)),
                ('delegate', models.ForeignKey(blank=True, db_constraint=False, null=True, on_delete=django.db.models.deletion.DO_NOTHING, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Delegate')),
                ('delegator', models.ForeignKey(blank=True, db_constraint=False, null=True, on_delete=django.db.models.deletion.DO_NOTHING, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Delegated by')),
                ('department', models.ForeignKey(blank=True, db_constraint=False, help_text='Leave empty to delegate for every department the delegator heads.', null=True, on_delete=django.db.models.deletion.DO_NOTHING, related_name='+', to='employees.department', verbose_name='Department')),
                ('history_user', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'historical Approval delegation',
                'verbose_name_plural': 'historical Approval delegations',
                'ordering': ('-history_date', '-history_id'),
                'get_latest_by': ('history_date', 'history_id'),
            },
            bases=(simple_history.models.HistoricalChanges, models.Model),
        ),
    ]
