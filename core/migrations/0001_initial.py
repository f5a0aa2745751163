import uuid

import django.core.serializers.json
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models

import core.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('auth', '0012_alter_user_first_name_max_length'),
    ]

    operations = [
        migrations.CreateModel(
            name='User',
            fields=[
                ('password', models.CharField(max_length=128, verbose_name='password')),
                ('is_superuser', models.BooleanField(default=False, help_text='Designates that this user has all permissions without explicitly assigning them.', verbose_name='superuser status')),
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('email', models.EmailField(help_text='Email address used for login', max_length=254, unique=True)),
                ('first_name', models.CharField(blank=True, help_text="User's first name", max_length=150)),
                ('last_name', models.CharField(blank=True, help_text="User's last name", max_length=150)),
                ('image_url', models.URLField(blank=True, help_text='Avatar URL from the identity provider', max_length=500, null=True)),
                ('is_active', models.BooleanField(default=True, help_text='Whether this user account is active')),
                ('is_staff', models.BooleanField(default=False, help_text='Whether this user can access the admin site')),
                ('is_admin', models.BooleanField(default=False, help_text='Application admin. Bypasses seat limits and seat billing')),
                ('subscription_status', models.CharField(choices=[('free', 'Free'), ('trial', 'Trial'), ('premium', 'Premium'), ('enterprise', 'Enterprise')], default='free', help_text='Stored subscription tier (see core.services.subscription.effective_status)', max_length=20)),
                ('subscription_source', models.CharField(blank=True, choices=[('stripe', 'Stripe'), ('manual', 'Manual (admin)')], help_text='Who granted the current subscription', max_length=20, null=True)),
                ('trial_ends_at', models.DateTimeField(blank=True, help_text='End of the one-time trial window', null=True)),
                ('has_used_trial', models.BooleanField(default=False, help_text='Set once when a trial is granted. Never reset')),
                ('subscription_ends_at', models.DateTimeField(blank=True, help_text='End of the paid access period. Null means open-ended', null=True)),
                ('subscription_cancelled_at', models.DateTimeField(blank=True, help_text='When the user cancelled. Access continues until subscription_ends_at', null=True)),
                ('stripe_customer_id', models.CharField(blank=True, help_text='Stripe customer ID for billing', max_length=255, null=True)),
                ('stripe_subscription_id', models.CharField(blank=True, help_text='Stripe subscription ID of the premium plan', max_length=255, null=True)),
                ('seat_subscription_item_id', models.CharField(blank=True, help_text="Stripe subscription item carrying the seat quantity ('admin-bypass' for admins)", max_length=255, null=True)),
                ('purchased_seats', models.PositiveIntegerField(default=0)),
                ('used_seats', models.PositiveIntegerField(default=0)),
                ('available_seats', models.PositiveIntegerField(default=0)),
                ('is_team_member', models.BooleanField(default=False, help_text="Whether this user belongs to another user's team workspace")),
                ('account_status', models.CharField(choices=[('active', 'Active'), ('pending_deletion', 'Pending Deletion')], default='active', help_text='Account lifecycle state', max_length=20)),
                ('marked_for_deletion_at', models.DateTimeField(blank=True, help_text='When the account entered the deletion grace period', null=True)),
                ('deleted_by', models.CharField(blank=True, help_text="'user' for self-service deletion, otherwise the admin email", max_length=255, null=True)),
                ('date_joined', models.DateTimeField(default=django.utils.timezone.now, help_text='When the user account was created')),
                ('last_login', models.DateTimeField(blank=True, help_text='When the user last logged in', null=True)),
                ('groups', models.ManyToManyField(blank=True, help_text='The groups this user belongs to. A user will get all permissions granted to each of their groups.', related_name='user_set', related_query_name='user', to='auth.group', verbose_name='groups')),
                ('user_permissions', models.ManyToManyField(blank=True, help_text='Specific permissions for this user.', related_name='user_set', related_query_name='user', to='auth.permission', verbose_name='user permissions')),
                ('team_workspace_owner', models.ForeignKey(blank=True, help_text='Owner of the team workspace this user belongs to', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='team_users', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'User',
                'verbose_name_plural': 'Users',
                'ordering': ['-date_joined'],
            },
            managers=[
                ('objects', core.models.CustomUserManager()),
            ],
        ),
        migrations.CreateModel(
            name='AdminLog',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('admin_email', models.CharField(help_text="Acting admin email, the acting user, or a system actor such as 'stripe-webhook'", max_length=255)),
                ('action', models.CharField(db_index=True, max_length=100)),
                ('target_user_id', models.UUIDField(blank=True, db_index=True, null=True)),
                ('details', models.JSONField(blank=True, default=dict, encoder=django.core.serializers.json.DjangoJSONEncoder)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'verbose_name': 'Admin Log',
                'verbose_name_plural': 'Admin Logs',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='SystemSettings',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('maintenance_mode', models.BooleanField(default=False)),
                ('maintenance_message', models.TextField(blank=True, null=True)),
                ('sign_in_enabled', models.BooleanField(default=True)),
                ('sign_up_enabled', models.BooleanField(default=True)),
                ('stripe_enabled', models.BooleanField(default=True)),
                ('analysis_enabled', models.BooleanField(default=True)),
                ('pdf_export_enabled', models.BooleanField(default=True)),
                ('saved_drafts_enabled', models.BooleanField(default=True)),
                ('account_deletion_enabled', models.BooleanField(default=True)),
                ('updated_by', models.CharField(blank=True, max_length=255, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'System Settings',
                'verbose_name_plural': 'System Settings',
            },
        ),
        migrations.CreateModel(
            name='AnalysisGroup',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=255)),
                ('description', models.TextField(blank=True, null=True)),
                ('color', models.CharField(default='#3B82F6', max_length=20)),
                ('icon', models.CharField(default='Folder', max_length=50)),
                ('sort_order', models.IntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='analysis_groups', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['sort_order', 'created_at'],
            },
        ),
        migrations.CreateModel(
            name='Notification',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('type', models.CharField(choices=[('team_invitation', 'Team Invitation'), ('premium_conflict', 'Premium Conflict'), ('invitation_reminder', 'Invitation Reminder'), ('invitation_accepted', 'Invitation Accepted'), ('invitation_declined', 'Invitation Declined'), ('invitation_rescinded', 'Invitation Rescinded'), ('member_removed', 'Member Removed'), ('member_left', 'Member Left'), ('subscription', 'Subscription'), ('system', 'System')], max_length=40)),
                ('title', models.CharField(max_length=255)),
                ('message', models.TextField()),
                ('link', models.CharField(blank=True, max_length=500, null=True)),
                ('metadata', models.JSONField(blank=True, default=dict, encoder=django.core.serializers.json.DjangoJSONEncoder)),
                ('is_read', models.BooleanField(default=False)),
                ('read_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='notifications', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='PropertyAnalysis',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=255)),
                ('address', models.CharField(blank=True, max_length=255, null=True)),
                ('city', models.CharField(blank=True, max_length=100, null=True)),
                ('state', models.CharField(blank=True, max_length=50, null=True)),
                ('zip_code', models.CharField(blank=True, max_length=20, null=True)),
                ('total_units', models.PositiveIntegerField(blank=True, null=True)),
                ('purchase_price', models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True)),
                ('notes', models.TextField(blank=True, null=True)),
                ('data', models.JSONField(blank=True, default=dict, help_text='Calculator inputs')),
                ('results', models.JSONField(blank=True, default=dict, help_text='Calculator outputs incl. keyMetrics')),
                ('cap_rate', models.FloatField(blank=True, null=True)),
                ('cash_flow', models.FloatField(blank=True, null=True)),
                ('cash_on_cash_return', models.FloatField(blank=True, null=True)),
                ('gross_rent_multiplier', models.FloatField(blank=True, null=True)),
                ('net_operating_income', models.FloatField(blank=True, null=True)),
                ('total_investment', models.FloatField(blank=True, null=True)),
                ('debt_service_coverage', models.FloatField(blank=True, null=True)),
                ('is_draft', models.BooleanField(default=False)),
                ('is_favorite', models.BooleanField(default=False)),
                ('is_archived', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('group', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='analyses', to='core.analysisgroup')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='analyses', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name_plural': 'Property analyses',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='WorkspaceInvitation',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('invited_email', models.EmailField(help_text='Email address of the person being invited (lower-cased)', max_length=254)),
                ('first_name', models.CharField(max_length=150)),
                ('last_name', models.CharField(max_length=150)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('pending_signup', 'Pending Signup'), ('pending_premium_cancel', 'Pending Premium Cancel'), ('accepted', 'Accepted'), ('declined', 'Declined'), ('expired', 'Expired'), ('rescinded', 'Rescinded')], default='pending', help_text='Current status of the invitation', max_length=30)),
                ('invitation_type', models.CharField(choices=[('existing_user', 'Existing User'), ('new_user', 'New User'), ('premium_conflict', 'Premium Conflict')], default='existing_user', help_text='Situation of the invitee when the invitation was sent', max_length=30)),
                ('token', models.CharField(editable=False, help_text='Secure token used in the invitation link', max_length=64, unique=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('sent_at', models.DateTimeField(default=django.utils.timezone.now, help_text='When the invitation email was last sent')),
                ('expires_at', models.DateTimeField(help_text='When this invitation expires')),
                ('responded_at', models.DateTimeField(blank=True, help_text='When the invitee accepted or declined', null=True)),
                ('invited_user', models.ForeignKey(blank=True, help_text='Invitee account, once one exists', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='received_invitations', to=settings.AUTH_USER_MODEL)),
                ('owner', models.ForeignKey(help_text='Workspace owner who sent the invitation', on_delete=django.db.models.deletion.CASCADE, related_name='sent_invitations', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='WorkspaceTeamMember',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('joined_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('invitation', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='memberships', to='core.workspaceinvitation')),
                ('member', models.OneToOneField(help_text='A user can belong to at most one team', on_delete=django.db.models.deletion.CASCADE, related_name='team_membership', to=settings.AUTH_USER_MODEL)),
                ('owner', models.ForeignKey(help_text='Workspace owner paying for the seat', on_delete=django.db.models.deletion.CASCADE, related_name='workspace_members', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['joined_at'],
            },
        ),
        migrations.AddIndex(
            model_name='user',
            index=models.Index(fields=['subscription_status', 'trial_ends_at'], name='core_user_subscri_5e1f0a_idx'),
        ),
        migrations.AddIndex(
            model_name='user',
            index=models.Index(fields=['subscription_status', 'subscription_ends_at'], name='core_user_subscri_9b2c41_idx'),
        ),
        migrations.AddIndex(
            model_name='user',
            index=models.Index(fields=['account_status', 'marked_for_deletion_at'], name='core_user_account_3d7e82_idx'),
        ),
        migrations.AddConstraint(
            model_name='user',
            constraint=models.CheckConstraint(condition=models.Q(('purchased_seats', models.F('used_seats') + models.F('available_seats'))), name='user_seat_ledger_balanced'),
        ),
        migrations.AddIndex(
            model_name='notification',
            index=models.Index(fields=['user', 'is_read'], name='core_notifi_user_id_8c4a17_idx'),
        ),
        migrations.AddIndex(
            model_name='propertyanalysis',
            index=models.Index(fields=['user', 'is_archived'], name='core_proper_user_id_2f6b90_idx'),
        ),
        migrations.AddIndex(
            model_name='propertyanalysis',
            index=models.Index(fields=['zip_code'], name='core_proper_zip_cod_71d3e5_idx'),
        ),
        migrations.AddIndex(
            model_name='propertyanalysis',
            index=models.Index(fields=['cap_rate'], name='core_proper_cap_rat_a09c36_idx'),
        ),
        migrations.AddIndex(
            model_name='workspaceinvitation',
            index=models.Index(fields=['invited_email', 'status'], name='core_worksp_invited_4b8d22_idx'),
        ),
        migrations.AddIndex(
            model_name='workspaceinvitation',
            index=models.Index(fields=['owner', 'status'], name='core_worksp_owner_i_c51e7f_idx'),
        ),
        migrations.AddIndex(
            model_name='workspaceinvitation',
            index=models.Index(fields=['expires_at'], name='core_worksp_expires_0e93ab_idx'),
        ),
        migrations.AddConstraint(
            model_name='workspaceinvitation',
            constraint=models.UniqueConstraint(fields=('owner', 'invited_email'), name='unique_invitation_per_owner_email'),
        ),
        migrations.AddIndex(
            model_name='workspaceteammember',
            index=models.Index(fields=['owner'], name='core_worksp_owner_i_7a2f14_idx'),
        ),
    ]
