from django.db import models
from django.db.models import F, Q
from django.contrib.auth.models import AbstractBaseUser, BaseUserManager, PermissionsMixin
from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.utils import timezone
import uuid
import datetime
import secrets


# Enum Choices
SUBSCRIPTION_STATUS_CHOICES = [
    ('free', 'Free'),
    ('trial', 'Trial'),
    ('premium', 'Premium'),
    ('enterprise', 'Enterprise'),
]

SUBSCRIPTION_SOURCE_CHOICES = [
    ('stripe', 'Stripe'),
    ('manual', 'Manual (admin)'),
]

ACCOUNT_STATUS_CHOICES = [
    ('active', 'Active'),
    ('pending_deletion', 'Pending Deletion'),
]

INVITATION_STATUS_CHOICES = [
    ('pending', 'Pending'),
    ('pending_signup', 'Pending Signup'),
    ('pending_premium_cancel', 'Pending Premium Cancel'),
    ('accepted', 'Accepted'),
    ('declined', 'Declined'),
    ('expired', 'Expired'),
    ('rescinded', 'Rescinded'),
]

INVITATION_TYPE_CHOICES = [
    ('existing_user', 'Existing User'),
    ('new_user', 'New User'),
    ('premium_conflict', 'Premium Conflict'),
]

NOTIFICATION_TYPE_CHOICES = [
    ('team_invitation', 'Team Invitation'),
    ('premium_conflict', 'Premium Conflict'),
    ('invitation_reminder', 'Invitation Reminder'),
    ('invitation_accepted', 'Invitation Accepted'),
    ('invitation_declined', 'Invitation Declined'),
    ('invitation_rescinded', 'Invitation Rescinded'),
    ('member_removed', 'Member Removed'),
    ('member_left', 'Member Left'),
    ('subscription', 'Subscription'),
    ('system', 'System'),
]

# Invitation states still waiting on the invitee (or on an external precondition)
PENDING_INVITATION_STATUSES = ('pending', 'pending_signup', 'pending_premium_cancel')
TERMINAL_INVITATION_STATUSES = ('accepted', 'declined', 'expired', 'rescinded')


class CustomUserManager(BaseUserManager):
    """Custom manager for User model with email-based authentication"""

    def create_user(self, email, password=None, **extra_fields):
        """Create and return a regular user with an email and password"""
        if not email:
            raise ValueError('The Email field must be set')

        email = self.normalize_email(email).lower()
        extra_fields.setdefault('is_active', True)
        extra_fields.setdefault('account_status', 'active')

        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        """Create and return a superuser with an email and password"""
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('is_admin', True)
        extra_fields.setdefault('is_active', True)

        if extra_fields.get('is_staff') is not True:
            raise ValueError('Superuser must have is_staff=True.')
        if extra_fields.get('is_superuser') is not True:
            raise ValueError('Superuser must have is_superuser=True.')

        return self.create_user(email, password, **extra_fields)


class User(AbstractBaseUser, PermissionsMixin):
    """
    Account holder.

    Carries the subscription state, the team seat ledger and team membership.
    Seat counters always satisfy ``purchased_seats == used_seats + available_seats``.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    # Core authentication fields
    email = models.EmailField(
        unique=True,
        help_text="Email address used for login"
    )

    # User profile fields
    first_name = models.CharField(
        max_length=150,
        blank=True,
        help_text="User's first name"
    )
    last_name = models.CharField(
        max_length=150,
        blank=True,
        help_text="User's last name"
    )
    image_url = models.URLField(
        max_length=500,
        null=True,
        blank=True,
        help_text="Avatar URL from the identity provider"
    )

    # System fields
    is_active = models.BooleanField(
        default=True,
        help_text="Whether this user account is active"
    )
    is_staff = models.BooleanField(
        default=False,
        help_text="Whether this user can access the admin site"
    )
    is_admin = models.BooleanField(
        default=False,
        help_text="Application admin. Bypasses seat limits and seat billing"
    )

    # Subscription
    subscription_status = models.CharField(
        max_length=20,
        choices=SUBSCRIPTION_STATUS_CHOICES,
        default='free',
        help_text="Stored subscription tier (see core.services.subscription.effective_status)"
    )
    subscription_source = models.CharField(
        max_length=20,
        choices=SUBSCRIPTION_SOURCE_CHOICES,
        null=True,
        blank=True,
        help_text="Who granted the current subscription"
    )
    trial_ends_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="End of the one-time trial window"
    )
    has_used_trial = models.BooleanField(
        default=False,
        help_text="Set once when a trial is granted. Never reset"
    )
    subscription_ends_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="End of the paid access period. Null means open-ended"
    )
    subscription_cancelled_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the user cancelled. Access continues until subscription_ends_at"
    )

    # Stripe
    stripe_customer_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="Stripe customer ID for billing"
    )
    stripe_subscription_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="Stripe subscription ID of the premium plan"
    )
    seat_subscription_item_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="Stripe subscription item carrying the seat quantity ('admin-bypass' for admins)"
    )

    # Seat ledger
    purchased_seats = models.PositiveIntegerField(default=0)
    used_seats = models.PositiveIntegerField(default=0)
    available_seats = models.PositiveIntegerField(default=0)

    # Team membership (as invitee)
    is_team_member = models.BooleanField(
        default=False,
        help_text="Whether this user belongs to another user's team workspace"
    )
    team_workspace_owner = models.ForeignKey(
        'self',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='team_users',
        help_text="Owner of the team workspace this user belongs to"
    )

    # Account lifecycle
    account_status = models.CharField(
        max_length=20,
        choices=ACCOUNT_STATUS_CHOICES,
        default='active',
        help_text="Account lifecycle state"
    )
    marked_for_deletion_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the account entered the deletion grace period"
    )
    deleted_by = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="'user' for self-service deletion, otherwise the admin email"
    )

    # Timestamps
    date_joined = models.DateTimeField(
        default=timezone.now,
        help_text="When the user account was created"
    )
    last_login = models.DateTimeField(
        blank=True,
        null=True,
        help_text="When the user last logged in"
    )

    # Use email as the username field
    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = []

    objects = CustomUserManager()

    class Meta:
        verbose_name = 'User'
        verbose_name_plural = 'Users'
        ordering = ['-date_joined']
        constraints = [
            models.CheckConstraint(
                condition=Q(purchased_seats=F('used_seats') + F('available_seats')),
                name='user_seat_ledger_balanced',
            ),
        ]
        indexes = [
            models.Index(fields=['subscription_status', 'trial_ends_at'], name='core_user_subscri_5e1f0a_idx'),
            models.Index(fields=['subscription_status', 'subscription_ends_at'], name='core_user_subscri_9b2c41_idx'),
            models.Index(fields=['account_status', 'marked_for_deletion_at'], name='core_user_account_3d7e82_idx'),
        ]

    def __str__(self):
        return f"{self.email} ({self.get_full_name()})"

    def get_full_name(self):
        """Return the user's full name"""
        return f"{self.first_name} {self.last_name}".strip()

    def get_short_name(self):
        """Return the user's first name"""
        return self.first_name

    @property
    def display_name(self):
        return self.get_full_name() or self.email

    def can_login(self):
        """Check if user can login (active and not scheduled for deletion)"""
        return self.is_active and self.account_status == 'active'

    def has_stripe_subscription(self):
        return bool(self.stripe_customer_id and self.stripe_subscription_id)


class WorkspaceInvitation(models.Model):
    """Invitation from a workspace owner to join their team, addressed by email"""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    owner = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='sent_invitations',
        help_text="Workspace owner who sent the invitation"
    )
    invited_email = models.EmailField(
        help_text="Email address of the person being invited (lower-cased)"
    )
    invited_user = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='received_invitations',
        help_text="Invitee account, once one exists"
    )
    first_name = models.CharField(max_length=150)
    last_name = models.CharField(max_length=150)

    status = models.CharField(
        max_length=30,
        choices=INVITATION_STATUS_CHOICES,
        default='pending',
        help_text="Current status of the invitation"
    )
    invitation_type = models.CharField(
        max_length=30,
        choices=INVITATION_TYPE_CHOICES,
        default='existing_user',
        help_text="Situation of the invitee when the invitation was sent"
    )
    token = models.CharField(
        max_length=64,
        unique=True,
        editable=False,
        help_text="Secure token used in the invitation link"
    )

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    sent_at = models.DateTimeField(
        default=timezone.now,
        help_text="When the invitation email was last sent"
    )
    expires_at = models.DateTimeField(
        help_text="When this invitation expires"
    )
    responded_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the invitee accepted or declined"
    )

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=['owner', 'invited_email'],
                name='unique_invitation_per_owner_email'
            )
        ]
        indexes = [
            models.Index(fields=['invited_email', 'status'], name='core_worksp_invited_4b8d22_idx'),
            models.Index(fields=['owner', 'status'], name='core_worksp_owner_i_c51e7f_idx'),
            models.Index(fields=['expires_at'], name='core_worksp_expires_0e93ab_idx'),
        ]
        ordering = ['-created_at']

    def save(self, *args, **kwargs):
        if not self.expires_at:
            self.expires_at = timezone.now() + datetime.timedelta(days=settings.INVITATION_EXPIRY_DAYS)

        if not self.token:
            self.token = self.generate_token()

        super().save(*args, **kwargs)

    @staticmethod
    def generate_token():
        """Generate a secure random token for invitations"""
        return secrets.token_urlsafe(24)  # 32 character URL-safe token

    def is_pending(self):
        return self.status in PENDING_INVITATION_STATUSES

    def is_expired(self, now=None):
        now = now or timezone.now()
        return self.status == 'expired' or (self.is_pending() and self.expires_at <= now)

    def __str__(self):
        return f"Invitation: {self.invited_email} → {self.owner.email} ({self.status})"


class WorkspaceTeamMember(models.Model):
    """Membership of a user in an owner's team workspace. Occupies one owner seat"""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    owner = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='workspace_members',
        help_text="Workspace owner paying for the seat"
    )
    member = models.OneToOneField(
        User,
        on_delete=models.CASCADE,
        related_name='team_membership',
        help_text="A user can belong to at most one team"
    )
    invitation = models.ForeignKey(
        WorkspaceInvitation,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='memberships',
    )
    joined_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['joined_at']
        indexes = [
            models.Index(fields=['owner'], name='core_worksp_owner_i_7a2f14_idx'),
        ]

    def __str__(self):
        return f"{self.member.email} in {self.owner.email}'s team"


class Notification(models.Model):
    """In-app notification"""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='notifications'
    )
    type = models.CharField(max_length=40, choices=NOTIFICATION_TYPE_CHOICES)
    title = models.CharField(max_length=255)
    message = models.TextField()
    link = models.CharField(max_length=500, null=True, blank=True)
    metadata = models.JSONField(default=dict, blank=True, encoder=DjangoJSONEncoder)
    is_read = models.BooleanField(default=False)
    read_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'is_read'], name='core_notifi_user_id_8c4a17_idx'),
        ]

    def __str__(self):
        return f"{self.type} → {self.user.email}"


class AdminLog(models.Model):
    """Audit trail for admin actions, billing events and automated jobs"""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    admin_email = models.CharField(
        max_length=255,
        help_text="Acting admin email, the acting user, or a system actor such as 'stripe-webhook'"
    )
    action = models.CharField(max_length=100, db_index=True)
    target_user_id = models.UUIDField(null=True, blank=True, db_index=True)
    details = models.JSONField(default=dict, blank=True, encoder=DjangoJSONEncoder)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        verbose_name = 'Admin Log'
        verbose_name_plural = 'Admin Logs'

    def __str__(self):
        return f"{self.action} by {self.admin_email}"


class SystemSettings(models.Model):
    """Global feature flags and maintenance switch. A single row is used"""
    maintenance_mode = models.BooleanField(default=False)
    maintenance_message = models.TextField(null=True, blank=True)
    sign_in_enabled = models.BooleanField(default=True)
    sign_up_enabled = models.BooleanField(default=True)
    stripe_enabled = models.BooleanField(default=True)
    analysis_enabled = models.BooleanField(default=True)
    pdf_export_enabled = models.BooleanField(default=True)
    saved_drafts_enabled = models.BooleanField(default=True)
    account_deletion_enabled = models.BooleanField(default=True)
    updated_by = models.CharField(max_length=255, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    FLAG_FIELDS = (
        'maintenance_mode', 'maintenance_message', 'sign_in_enabled',
        'sign_up_enabled', 'stripe_enabled', 'analysis_enabled',
        'pdf_export_enabled', 'saved_drafts_enabled', 'account_deletion_enabled',
    )

    class Meta:
        verbose_name = 'System Settings'
        verbose_name_plural = 'System Settings'

    @classmethod
    def load(cls):
        """Return the settings row, creating it with defaults on first use"""
        instance = cls.objects.order_by('id').first()
        if instance is None:
            instance = cls.objects.create()
        return instance

    def __str__(self):
        return "System Settings"


class AnalysisGroup(models.Model):
    """Folder for organising saved analyses"""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='analysis_groups'
    )
    name = models.CharField(max_length=255)
    description = models.TextField(null=True, blank=True)
    color = models.CharField(max_length=20, default='#3B82F6')
    icon = models.CharField(max_length=50, default='Folder')
    sort_order = models.IntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['sort_order', 'created_at']

    def __str__(self):
        return self.name


class PropertyAnalysis(models.Model):
    """A saved property analysis with its inputs, results and denormalized metrics"""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='analyses'
    )
    group = models.ForeignKey(
        AnalysisGroup,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='analyses'
    )

    name = models.CharField(max_length=255)
    address = models.CharField(max_length=255, null=True, blank=True)
    city = models.CharField(max_length=100, null=True, blank=True)
    state = models.CharField(max_length=50, null=True, blank=True)
    zip_code = models.CharField(max_length=20, null=True, blank=True)
    total_units = models.PositiveIntegerField(null=True, blank=True)
    purchase_price = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    notes = models.TextField(null=True, blank=True)

    data = models.JSONField(default=dict, blank=True, help_text="Calculator inputs")
    results = models.JSONField(default=dict, blank=True, help_text="Calculator outputs incl. keyMetrics")

    # Denormalized from results.keyMetrics for filtering and sorting
    cap_rate = models.FloatField(null=True, blank=True)
    cash_flow = models.FloatField(null=True, blank=True)
    cash_on_cash_return = models.FloatField(null=True, blank=True)
    gross_rent_multiplier = models.FloatField(null=True, blank=True)
    net_operating_income = models.FloatField(null=True, blank=True)
    total_investment = models.FloatField(null=True, blank=True)
    debt_service_coverage = models.FloatField(null=True, blank=True)

    is_draft = models.BooleanField(default=False)
    is_favorite = models.BooleanField(default=False)
    is_archived = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    KEY_METRIC_COLUMNS = {
        'capRate': 'cap_rate',
        'annualCashFlow': 'cash_flow',
        'cashOnCashReturn': 'cash_on_cash_return',
        'grossRentMultiplier': 'gross_rent_multiplier',
        'netOperatingIncome': 'net_operating_income',
        'totalInvestment': 'total_investment',
        'debtServiceCoverageRatio': 'debt_service_coverage',
    }

    class Meta:
        ordering = ['-created_at']
        verbose_name_plural = 'Property analyses'
        indexes = [
            models.Index(fields=['user', 'is_archived'], name='core_proper_user_id_2f6b90_idx'),
            models.Index(fields=['zip_code'], name='core_proper_zip_cod_71d3e5_idx'),
            models.Index(fields=['cap_rate'], name='core_proper_cap_rat_a09c36_idx'),
        ]

    def apply_key_metrics(self, results):
        """Copy results.keyMetrics into the denormalized columns"""
        key_metrics = (results or {}).get('keyMetrics') or {}
        for metric, column in self.KEY_METRIC_COLUMNS.items():
            if metric in key_metrics:
                setattr(self, column, key_metrics[metric])

    def __str__(self):
        return self.name
