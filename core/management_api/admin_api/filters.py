import django_filters
from django.db import models
from core.models import AdminLog, User


class AdminUserFilter(django_filters.FilterSet):
    """Filter for the admin user list"""
    search = django_filters.CharFilter(method='filter_search', label='Search')
    subscription_status = django_filters.CharFilter()
    account_status = django_filters.CharFilter()
    is_team_member = django_filters.BooleanFilter()
    joined_after = django_filters.DateTimeFilter(field_name='date_joined', lookup_expr='gte')
    joined_before = django_filters.DateTimeFilter(field_name='date_joined', lookup_expr='lte')

    class Meta:
        model = User
        fields = ['subscription_status', 'account_status', 'is_team_member', 'is_admin']

    def filter_search(self, queryset, name, value):
        return queryset.filter(
            models.Q(email__icontains=value) |
            models.Q(first_name__icontains=value) |
            models.Q(last_name__icontains=value)
        )


class AdminLogFilter(django_filters.FilterSet):
    action = django_filters.CharFilter()
    admin_email = django_filters.CharFilter(lookup_expr='icontains')
    target_user_id = django_filters.UUIDFilter()
    created_after = django_filters.DateTimeFilter(field_name='created_at', lookup_expr='gte')
    created_before = django_filters.DateTimeFilter(field_name='created_at', lookup_expr='lte')

    class Meta:
        model = AdminLog
        fields = ['action', 'admin_email', 'target_user_id']
