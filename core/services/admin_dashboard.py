"""
Figures for the admin dashboard: users, analyses, revenue, growth and alerts.

Revenue counts Stripe-billed premium users only. Manually granted premium
is free access and never contributes to MRR.
"""
import datetime
from decimal import Decimal

from django.conf import settings
from django.db.models import Count
from django.db.models.functions import TruncDate
from django.utils import timezone

from core.models import AdminLog, AnalysisGroup, PropertyAnalysis, User, WorkspaceInvitation
from core.services.system_settings import get_system_settings

WEEKS_PER_MONTH = Decimal('4.33')
GROWTH_CHART_DAYS = 30
RECENT_SIGNUPS = 10


def _percent(part, whole):
    if not whole:
        return 0
    return round(part / whole * 100, 1)


def _money(value):
    return float(Decimal(value).quantize(Decimal('0.01')))


def growth_chart(now=None, days=GROWTH_CHART_DAYS):
    """Sign-ups per calendar day for the last ``days`` days, oldest first"""
    now = now or timezone.now()
    today = timezone.localdate(now)
    start = today - datetime.timedelta(days=days - 1)

    per_day = dict(
        User.objects.filter(date_joined__date__gte=start)
        .annotate(day=TruncDate('date_joined'))
        .order_by()
        .values('day')
        .annotate(count=Count('id'))
        .values_list('day', 'count')
    )
    return [
        {'date': day.isoformat(), 'users': per_day.get(day, 0)}
        for day in (start + datetime.timedelta(days=offset) for offset in range(days))
    ]


def dashboard_stats(now=None):
    now = now or timezone.now()
    week_ago = now - datetime.timedelta(days=7)
    month_ago = now - datetime.timedelta(days=30)

    users = User.objects.all()
    total_users = users.count()
    by_status = dict(
        users.order_by()
        .values('subscription_status')
        .annotate(count=Count('id'))
        .values_list('subscription_status', 'count')
    )
    premium = users.filter(subscription_status='premium')
    premium_users = by_status.get('premium', 0)
    stripe_premium = premium.filter(subscription_source='stripe').count()
    manual_premium = premium.filter(subscription_source='manual').count()
    trial_users = by_status.get('trial', 0)
    free_users = by_status.get('free', 0)

    analyses = PropertyAnalysis.objects.all()
    premium_analyses = analyses.filter(user__subscription_status='premium').count()

    cancelled = users.filter(subscription_cancelled_at__gte=month_ago, subscription_cancelled_at__lte=now)
    stripe_cancelled = cancelled.filter(subscription_source='stripe').count()
    had_trial = users.filter(has_used_trial=True).count()

    mrr = settings.PREMIUM_MONTHLY_PRICE * stripe_premium
    trials = users.filter(subscription_status='trial', trial_ends_at__gte=now)

    return {
        'users': {
            'total': total_users,
            'premium': premium_users,
            'premiumStripe': stripe_premium,
            'premiumManual': manual_premium,
            'enterprise': by_status.get('enterprise', 0),
            'trial': trial_users,
            'free': free_users,
            'active30d': users.filter(last_login__gte=month_ago).count(),
            'active7d': users.filter(last_login__gte=week_ago).count(),
            'ratios': {
                'premium': _percent(premium_users, total_users),
                'trial': _percent(trial_users, total_users),
                'free': _percent(free_users, total_users),
            },
        },
        'analyses': {
            'total': analyses.count(),
            'thisWeek': analyses.filter(created_at__gte=week_ago).count(),
            'thisMonth': analyses.filter(created_at__gte=month_ago).count(),
            # Per premium user, counting only analyses they own
            'avgPerUser': round(premium_analyses / premium_users, 1) if premium_users else 0,
        },
        'revenue': {
            'mrr': _money(mrr),
            'expectedWeekly': _money(mrr / WEEKS_PER_MONTH),
            'expectedMonthly': _money(mrr),
            'cancelledThisMonth': cancelled.count(),
            'stripePremiumCount': stripe_premium,
            'manualPremiumCount': manual_premium,
        },
        'growth': {
            'newSignupsWeek': users.filter(date_joined__gte=week_ago).count(),
            'newSignupsMonth': users.filter(date_joined__gte=month_ago).count(),
            'conversionRate': _percent(premium_users, had_trial),
            'churnRate': _percent(stripe_cancelled, stripe_premium),
        },
        'alerts': {
            'trialsExpiring24h': trials.filter(trial_ends_at__lte=now + datetime.timedelta(hours=24)).count(),
            'trialsExpiring7d': trials.filter(trial_ends_at__lte=now + datetime.timedelta(days=7)).count(),
            'pendingDeletions': users.filter(account_status='pending_deletion').count(),
        },
        'system': {
            'database': {
                'totalUsers': total_users,
                'totalAnalyses': analyses.count(),
                'totalGroups': AnalysisGroup.objects.count(),
                'totalInvitations': WorkspaceInvitation.objects.count(),
                'totalAdminLogs': AdminLog.objects.count(),
            },
            'features': dict(get_system_settings()),
        },
        'recentActivity': [
            {
                'id': str(user.id),
                'email': user.email,
                'firstName': user.first_name,
                'lastName': user.last_name,
                'subscriptionStatus': user.subscription_status,
                'subscriptionSource': user.subscription_source,
                'createdAt': user.date_joined,
            }
            for user in users.order_by('-date_joined')[:RECENT_SIGNUPS]
        ],
        'growthChart': growth_chart(now),
    }
