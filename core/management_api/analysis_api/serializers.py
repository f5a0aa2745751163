from decimal import Decimal

from rest_framework import serializers
from drf_spectacular.utils import extend_schema_field

from core.models import AnalysisGroup, PropertyAnalysis
from core.services import analysis_metrics


class PropertyAnalysisSerializer(serializers.ModelSerializer):
    """
    Saved analysis.

    ``results`` is recomputed from ``data`` whenever ``data`` changes and no
    results are sent. ``key_metrics`` may be sent on its own to overwrite the
    metrics of the stored results. Either way the metric columns are
    refreshed from ``results.keyMetrics``.
    """
    key_metrics = serializers.JSONField(required=False, write_only=True)
    owner_email = serializers.EmailField(source='user.email', read_only=True)
    group_name = serializers.CharField(source='group.name', read_only=True, default=None)

    class Meta:
        model = PropertyAnalysis
        fields = [
            'id', 'user', 'owner_email', 'group', 'group_name',
            'name', 'address', 'city', 'state', 'zip_code', 'total_units',
            'purchase_price', 'notes', 'data', 'results', 'key_metrics',
            'cap_rate', 'cash_flow', 'cash_on_cash_return', 'gross_rent_multiplier',
            'net_operating_income', 'total_investment', 'debt_service_coverage',
            'is_draft', 'is_favorite', 'is_archived', 'created_at', 'updated_at',
        ]
        read_only_fields = [
            'id', 'user', 'owner_email', 'group_name',
            'cap_rate', 'cash_flow', 'cash_on_cash_return', 'gross_rent_multiplier',
            'net_operating_income', 'total_investment', 'debt_service_coverage',
            'created_at', 'updated_at',
        ]

    def validate_group(self, value):
        if value is None:
            return value
        allowed = self.context.get('workspace_user_ids') or set()
        if value.user_id not in allowed:
            raise serializers.ValidationError('Group not found.')
        return value

    def validate_key_metrics(self, value):
        if not isinstance(value, dict):
            raise serializers.ValidationError('key_metrics must be an object.')
        return value

    def _prepare(self, validated_data, instance=None):
        key_metrics = validated_data.pop('key_metrics', None)

        if 'data' in validated_data and 'results' not in validated_data:
            validated_data['results'] = analysis_metrics.calculate(validated_data['data'] or {})

        if key_metrics is not None:
            results = dict(validated_data.get('results') or (instance.results if instance else {}) or {})
            results['keyMetrics'] = {**(results.get('keyMetrics') or {}), **key_metrics}
            validated_data['results'] = results

        if 'purchase_price' not in validated_data and 'data' in validated_data:
            price = ((validated_data['data'] or {}).get('property') or {}).get('purchasePrice')
            if isinstance(price, (int, float)) and (instance is None or instance.purchase_price is None):
                validated_data['purchase_price'] = Decimal(str(price))
        return validated_data

    def create(self, validated_data):
        validated_data = self._prepare(validated_data)
        instance = PropertyAnalysis(**validated_data)
        instance.apply_key_metrics(instance.results)
        instance.save()
        return instance

    def update(self, instance, validated_data):
        validated_data = self._prepare(validated_data, instance)
        for field, value in validated_data.items():
            setattr(instance, field, value)
        if 'results' in validated_data:
            instance.apply_key_metrics(instance.results)
        instance.save()
        return instance


class AnalysisGroupSerializer(serializers.ModelSerializer):
    analysisCount = serializers.SerializerMethodField()
    sort_order = serializers.IntegerField(required=False)

    class Meta:
        model = AnalysisGroup
        fields = [
            'id', 'user', 'name', 'description', 'color', 'icon', 'sort_order',
            'analysisCount', 'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'user', 'analysisCount', 'created_at', 'updated_at']

    @extend_schema_field(serializers.IntegerField())
    def get_analysisCount(self, obj):
        annotated = getattr(obj, 'analysis_count', None)
        if annotated is not None:
            return annotated
        return obj.analyses.count()

    def create(self, validated_data):
        if validated_data.get('sort_order') is None:
            last = (
                AnalysisGroup.objects.filter(user=validated_data['user'])
                .order_by('-sort_order')
                .values_list('sort_order', flat=True)
                .first()
            )
            validated_data['sort_order'] = 0 if last is None else last + 1
        return super().create(validated_data)


class CalculateSerializer(serializers.Serializer):
    """Calculator input"""
    data = serializers.JSONField()
    basis = serializers.ChoiceField(choices=analysis_metrics.RENT_BASES, default='current')
    compare = serializers.BooleanField(default=False)

    def validate_data(self, value):
        if not isinstance(value, dict):
            raise serializers.ValidationError('data must be an object.')
        return value
