from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.response import Response
from django.db.models import Count
from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import extend_schema, extend_schema_view, OpenApiResponse, OpenApiExample
import logging

from core.models import AnalysisGroup, PropertyAnalysis
from core.services import analysis_metrics
from core.services.invitations import workspace_user_ids
from core.services.subscription import effective_status, get_tier_features
from core.services.system_settings import is_feature_enabled
from .filters import PropertyAnalysisFilter
from .permissions import AnalysisGroupPermission, SavedAnalysisPermission
from .serializers import AnalysisGroupSerializer, CalculateSerializer, PropertyAnalysisSerializer

logger = logging.getLogger(__name__)


CALCULATION_EXAMPLE = {
    'basis': 'current',
    'keyMetrics': {
        'capRate': 0.0712,
        'cashOnCashReturn': 0.0841,
        'netOperatingIncome': 85440.0,
        'grossRentMultiplier': 8.33,
        'debtServiceCoverageRatio': 1.38,
        'totalInvestment': 330000.0,
        'annualCashFlow': 27760.8,
        'yearsToRecoup': 11.8873
    },
    'monthlyBreakdown': {
        'grossIncome': 11400.0,
        'totalExpenses': 4280.0,
        'netOperatingIncome': 7120.0,
        'mortgagePayment': 4806.6,
        'cashFlow': 2313.4
    },
    'annualBreakdown': {
        'grossIncome': 136800.0,
        'totalExpenses': 51360.0,
        'netOperatingIncome': 85440.0,
        'debtService': 57679.2,
        'cashFlow': 27760.8
    }
}


@extend_schema_view(
    list=extend_schema(
        summary="🏘️ List saved analyses",
        description="""
        Saved analyses of your workspace: your own, your team owner's and your teammates'.

        **🔎 Filters**: `search`, `group`, `onlyUngrouped`, `zip`, `city`, `state`,
        `minUnits`/`maxUnits`, `minPrice`/`maxPrice`, `minCapRate`/`maxCapRate`,
        `isFavorite`, `isArchived` (archived rows are hidden by default), `isDraft`.

        **↕️ Sorting**: `sortBy` (`createdAt`, `updatedAt`, `name`, `purchasePrice`,
        `totalUnits`, `capRate`, `cashFlow`, `cashOnCashReturn`) and `order` (`asc`/`desc`).

        **🔐 Requires** premium, enterprise or team membership.
        """,
        responses={
            200: OpenApiResponse(response=PropertyAnalysisSerializer(many=True), description="✅ Analyses"),
            403: OpenApiResponse(description="🚫 Saved analyses require premium or team membership")
        },
        tags=["Analyses"]
    ),
    create=extend_schema(
        summary="💾 Save analysis",
        description="""
        Save an analysis. When `data` is sent without `results`, the results are
        computed server-side. Metric columns are filled from `results.keyMetrics`.
        """,
        responses={
            201: OpenApiResponse(response=PropertyAnalysisSerializer, description="✅ Saved"),
            400: OpenApiResponse(description="❌ Validation error"),
            403: OpenApiResponse(description="🚫 Saving is disabled or not part of your plan")
        },
        tags=["Analyses"]
    ),
    retrieve=extend_schema(summary="🔍 Get analysis", tags=["Analyses"]),
    update=extend_schema(summary="✏️ Update analysis", tags=["Analyses"]),
    partial_update=extend_schema(
        summary="✏️ Partially update analysis",
        description="Send `key_metrics` to overwrite stored metrics. The metric columns follow.",
        tags=["Analyses"]
    ),
    destroy=extend_schema(summary="🗑️ Delete analysis", tags=["Analyses"]),
)
class PropertyAnalysisViewSet(viewsets.ModelViewSet):
    """
    🏘️ **Saved property analyses**

    - **👥 Workspace**: rows of the whole team are visible
    - **✏️ Writes**: the author or the workspace owner
    """
    serializer_class = PropertyAnalysisSerializer
    permission_classes = [SavedAnalysisPermission]
    filter_backends = [DjangoFilterBackend]
    filterset_class = PropertyAnalysisFilter

    def get_queryset(self):
        user = self.request.user
        if not user or not user.is_authenticated:
            return PropertyAnalysis.objects.none()
        return PropertyAnalysis.objects.select_related('user', 'group').filter(
            user_id__in=workspace_user_ids(user)
        )

    def get_serializer_context(self):
        context = super().get_serializer_context()
        if self.request.user and self.request.user.is_authenticated:
            context['workspace_user_ids'] = workspace_user_ids(self.request.user)
        return context

    def _saving_disabled(self):
        return Response(
            {"error": "Saving analyses is currently disabled"},
            status=status.HTTP_403_FORBIDDEN
        )

    def create(self, request, *args, **kwargs):
        if not is_feature_enabled('saved_drafts_enabled'):
            return self._saving_disabled()
        return super().create(request, *args, **kwargs)

    def update(self, request, *args, **kwargs):
        if not is_feature_enabled('saved_drafts_enabled'):
            return self._saving_disabled()
        return super().update(request, *args, **kwargs)

    def perform_create(self, serializer):
        analysis = serializer.save(user=self.request.user)
        logger.info("Analysis %s saved by %s", analysis.id, self.request.user.email)

    @extend_schema(
        summary="🧮 Calculate P&L and key metrics",
        description="""
        Run the calculator without saving anything.

        **📥 Input** (`data`):
        - `property`: purchasePrice, downPayment, closingCosts, rehabCosts, loanTerm (years), interestRate (%)
        - `unitMix`: list of {count, currentRent, marketRent, vacancyRate}
        - `income`: other monthly income lines {amount}
        - `expenses`: {name, amount, isPercentage, percentageOf: income|rent|propertyValue}

        **📤 Output**: key metrics (ratios as fractions), monthly and annual breakdowns
        and the P&L. `basis` selects current or market rents; `compare: true` adds
        both P&Ls side by side.

        **🔐 Requires** a tier that can analyze (trial, premium, enterprise) or team membership.
        """,
        request=CalculateSerializer,
        responses={
            200: OpenApiResponse(
                description="✅ Calculation",
                examples=[OpenApiExample('Calculation', value=CALCULATION_EXAMPLE)]
            ),
            400: OpenApiResponse(description="❌ Invalid input"),
            403: OpenApiResponse(description="🚫 Analysis not available on your plan"),
            503: OpenApiResponse(description="🚧 Analysis temporarily disabled")
        },
        tags=["Analyses"]
    )
    @action(detail=False, methods=['post'])
    def calculate(self, request):
        user = request.user
        if not user.is_admin and not is_feature_enabled('analysis_enabled'):
            return Response(
                {"error": "Property analysis is temporarily unavailable"},
                status=status.HTTP_503_SERVICE_UNAVAILABLE
            )
        can_analyze = get_tier_features(effective_status(user))['can_analyze']
        if not (can_analyze or user.is_admin or user.is_team_member):
            return Response(
                {"error": "Start a trial or upgrade to premium to analyze properties"},
                status=status.HTTP_403_FORBIDDEN
            )

        serializer = CalculateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        data = serializer.validated_data['data']
        result = analysis_metrics.calculate(data, serializer.validated_data['basis'])
        if serializer.validated_data['compare']:
            result['comparison'] = analysis_metrics.compare_rent_bases(data)
        return Response(result)


@extend_schema_view(
    list=extend_schema(
        summary="📁 List groups",
        description="Analysis groups of your workspace with the number of analyses in each.",
        tags=["Analyses"]
    ),
    create=extend_schema(
        summary="📁 Create group",
        description="""
        Create a group. Defaults: color `#3B82F6`, icon `Folder`, placed after your last group.

        **🔐 Requires** premium, enterprise or team membership.
        """,
        tags=["Analyses"]
    ),
    retrieve=extend_schema(summary="📁 Get group", tags=["Analyses"]),
    update=extend_schema(summary="📁 Update group", tags=["Analyses"]),
    partial_update=extend_schema(summary="📁 Partially update group", tags=["Analyses"]),
    destroy=extend_schema(
        summary="📁 Delete group",
        description="Delete a group. Its analyses are kept and become ungrouped.",
        responses={
            200: OpenApiResponse(
                description="✅ Deleted",
                examples=[OpenApiExample('Deleted', value={'success': True, 'ungroupedAnalyses': 3})]
            )
        },
        tags=["Analyses"]
    ),
)
class AnalysisGroupViewSet(viewsets.ModelViewSet):
    serializer_class = AnalysisGroupSerializer
    permission_classes = [AnalysisGroupPermission]
    filter_backends = []
    pagination_class = None

    def get_queryset(self):
        user = self.request.user
        if not user or not user.is_authenticated:
            return AnalysisGroup.objects.none()
        return (
            AnalysisGroup.objects.filter(user_id__in=workspace_user_ids(user))
            .annotate(analysis_count=Count('analyses'))
            .order_by('sort_order', 'created_at')
        )

    def perform_create(self, serializer):
        serializer.save(user=self.request.user)

    def destroy(self, request, *args, **kwargs):
        group = self.get_object()
        ungrouped = PropertyAnalysis.objects.filter(group=group).update(group=None)
        group.delete()
        return Response({'success': True, 'ungroupedAnalyses': ungrouped}, status=status.HTTP_200_OK)
