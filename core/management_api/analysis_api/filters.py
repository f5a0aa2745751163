import django_filters
from django.db import models
from core.models import PropertyAnalysis


class PropertyAnalysisFilter(django_filters.FilterSet):
    """Filter for saved analyses. Archived analyses are hidden unless ``isArchived`` is given"""

    SORT_FIELDS = {
        'createdAt': 'created_at',
        'updatedAt': 'updated_at',
        'name': 'name',
        'purchasePrice': 'purchase_price',
        'totalUnits': 'total_units',
        'capRate': 'cap_rate',
        'cashFlow': 'cash_flow',
        'cashOnCashReturn': 'cash_on_cash_return',
    }

    search = django_filters.CharFilter(method='filter_search', label='Search')
    group = django_filters.UUIDFilter(field_name='group_id')
    onlyUngrouped = django_filters.BooleanFilter(method='filter_only_ungrouped')
    zip = django_filters.CharFilter(field_name='zip_code')
    city = django_filters.CharFilter(field_name='city', lookup_expr='iexact')
    state = django_filters.CharFilter(field_name='state', lookup_expr='iexact')

    # Range filters
    minUnits = django_filters.NumberFilter(field_name='total_units', lookup_expr='gte')
    maxUnits = django_filters.NumberFilter(field_name='total_units', lookup_expr='lte')
    minPrice = django_filters.NumberFilter(field_name='purchase_price', lookup_expr='gte')
    maxPrice = django_filters.NumberFilter(field_name='purchase_price', lookup_expr='lte')
    minCapRate = django_filters.NumberFilter(field_name='cap_rate', lookup_expr='gte')
    maxCapRate = django_filters.NumberFilter(field_name='cap_rate', lookup_expr='lte')

    isFavorite = django_filters.BooleanFilter(field_name='is_favorite')
    isArchived = django_filters.BooleanFilter(field_name='is_archived')
    isDraft = django_filters.BooleanFilter(field_name='is_draft')

    sortBy = django_filters.ChoiceFilter(
        method='filter_noop',
        choices=[(key, key) for key in SORT_FIELDS],
    )
    order = django_filters.ChoiceFilter(
        method='filter_noop',
        choices=[('asc', 'asc'), ('desc', 'desc')],
    )

    class Meta:
        model = PropertyAnalysis
        fields = ['group', 'city', 'state']

    def filter_search(self, queryset, name, value):
        """Global search across name and address fields"""
        return queryset.filter(
            models.Q(name__icontains=value) |
            models.Q(address__icontains=value) |
            models.Q(city__icontains=value) |
            models.Q(notes__icontains=value)
        )

    def filter_only_ungrouped(self, queryset, name, value):
        if value:
            return queryset.filter(group__isnull=True)
        return queryset

    def filter_noop(self, queryset, name, value):
        # Applied together in filter_queryset
        return queryset

    def filter_queryset(self, queryset):
        queryset = super().filter_queryset(queryset)
        if self.form.cleaned_data.get('isArchived') is None:
            queryset = queryset.filter(is_archived=False)

        column = self.SORT_FIELDS.get(self.form.cleaned_data.get('sortBy') or 'createdAt')
        if self.form.cleaned_data.get('order') == 'asc':
            return queryset.order_by(models.F(column).asc(nulls_last=True))
        return queryset.order_by(models.F(column).desc(nulls_last=True))
