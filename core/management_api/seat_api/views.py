from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from django.conf import settings
from drf_spectacular.utils import extend_schema, OpenApiResponse, OpenApiExample

from core.services import seat_ledger
from core.services.exceptions import ServiceError
from core.management_api.utils import service_error_response
from .serializers import SeatQuantitySerializer, RemoveSeatsSerializer


def _seat_summary(user):
    return {
        **seat_ledger.seat_counts(user),
        'monthlyCost': float(seat_ledger.calculate_monthly_cost(user.purchased_seats, user.is_admin)),
    }


@extend_schema(
    summary="💺 Seat overview",
    description="""
    Seat counters, pricing and what the user is allowed to do next.

    `purchased = used + available` always holds. Admin accounts pay nothing for seats.
    """,
    request=None,
    responses={
        200: OpenApiResponse(
            description="✅ Seat overview",
            examples=[
                OpenApiExample(
                    'Owner With Seats',
                    value={
                        'success': True,
                        'seats': {'purchased': 5, 'used': 3, 'available': 2, 'monthlyCost': 49.95},
                        'pricing': {'pricePerSeat': 9.99, 'maxSeats': 25, 'currency': 'usd'},
                        'permissions': {
                            'canPurchase': False,
                            'canPurchaseReason': None,
                            'canAddSeats': True,
                            'canRemoveSeats': True
                        },
                        'user': {'subscriptionStatus': 'premium', 'isAdmin': False}
                    }
                )
            ]
        )
    },
    tags=["Seats"]
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def seat_info(request):
    return Response(seat_ledger.info(request.user))


@extend_schema(
    summary="🛒 Purchase seats",
    description="""
    First seat purchase. Adds the seat price to the premium Stripe subscription.

    **🔐 Requirements**:
    - Active premium/enterprise subscription (admins are exempt)
    - No seats purchased yet (use **add** afterwards)
    - `quantity` between 1 and 25
    """,
    request=SeatQuantitySerializer,
    responses={
        200: OpenApiResponse(
            description="✅ Seats purchased",
            examples=[
                OpenApiExample(
                    'Purchased',
                    value={
                        'success': True,
                        'message': 'Successfully purchased 5 seats',
                        'seats': {'purchased': 5, 'used': 0, 'available': 5, 'monthlyCost': 49.95},
                        'billing': {'monthlyCost': 49.95, 'pricePerSeat': 9.99, 'isAdmin': False}
                    }
                )
            ]
        ),
        400: OpenApiResponse(
            description="❌ Invalid quantity or seats already purchased",
            examples=[
                OpenApiExample(
                    'Already Purchased',
                    value={
                        'error': 'You have already purchased seats. Use the "Add More Seats" option instead.',
                        'currentSeats': 5
                    }
                )
            ]
        ),
        403: OpenApiResponse(description="🚫 Premium subscription required"),
        500: OpenApiResponse(description="❌ Stripe API error"),
        503: OpenApiResponse(description="🚧 Payments are temporarily unavailable")
    },
    tags=["Seats"]
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def purchase_seats(request):
    serializer = SeatQuantitySerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    quantity = serializer.validated_data['quantity']
    try:
        user = seat_ledger.purchase(request.user, quantity)
    except ServiceError as e:
        return service_error_response(e)

    monthly_cost = float(seat_ledger.calculate_monthly_cost(user.purchased_seats, user.is_admin))
    return Response({
        'success': True,
        'message': f"Successfully purchased {quantity} seats",
        'seats': _seat_summary(user),
        'billing': {
            'monthlyCost': monthly_cost,
            'pricePerSeat': float(settings.SEAT_PRICE),
            'isAdmin': user.is_admin,
        }
    })


@extend_schema(
    summary="➕ Add seats",
    description="""
    Increase the seat quantity. Stripe prorates the change.

    The total may not exceed 25 seats.
    """,
    request=SeatQuantitySerializer,
    responses={
        200: OpenApiResponse(
            description="✅ Seats added",
            examples=[
                OpenApiExample(
                    'Added',
                    value={
                        'success': True,
                        'message': 'Successfully added 2 seats',
                        'seats': {'purchased': 7, 'used': 3, 'available': 4, 'monthlyCost': 69.93}
                    }
                )
            ]
        ),
        400: OpenApiResponse(
            description="❌ Nothing purchased yet or limit exceeded",
            examples=[
                OpenApiExample(
                    'Limit',
                    value={
                        'error': 'Cannot exceed 25 seats. You currently have 24 seats.',
                        'currentSeats': 24,
                        'maxSeats': 25
                    }
                )
            ]
        ),
        500: OpenApiResponse(description="❌ Stripe API error")
    },
    tags=["Seats"]
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def add_seats(request):
    serializer = SeatQuantitySerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    quantity = serializer.validated_data['quantity']
    try:
        user = seat_ledger.add(request.user, quantity)
    except ServiceError as e:
        return service_error_response(e)

    return Response({
        'success': True,
        'message': f"Successfully added {quantity} seats",
        'seats': _seat_summary(user),
    })


@extend_schema(
    summary="➖ Remove seats",
    description="""
    Give back unused seats. Accepts `quantity` (or the legacy `seatsToRemove`).

    **🚫 Seats occupied by team members or pending invitations cannot be removed.**
    Removing every seat deletes the seat item from the Stripe subscription.
    """,
    request=RemoveSeatsSerializer,
    responses={
        200: OpenApiResponse(
            description="✅ Seats removed",
            examples=[
                OpenApiExample(
                    'Removed',
                    value={
                        'success': True,
                        'message': 'Successfully removed 2 seats',
                        'seats': {'purchased': 3, 'used': 3, 'available': 0, 'monthlyCost': 29.97},
                        'billing': {'oldMonthlyCost': 49.95, 'newMonthlyCost': 29.97, 'monthlySavings': 19.98}
                    }
                )
            ]
        ),
        400: OpenApiResponse(
            description="❌ Seats in use",
            examples=[
                OpenApiExample(
                    'In Use',
                    value={
                        'error': 'Cannot remove 3 seats. You have 3 team members using seats. Remove team members first.',
                        'purchasedSeats': 5,
                        'usedSeats': 3,
                        'availableSeats': 2
                    }
                )
            ]
        ),
        500: OpenApiResponse(description="❌ Stripe API error")
    },
    tags=["Seats"]
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def remove_seats(request):
    serializer = RemoveSeatsSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    quantity = serializer.validated_data['quantity']
    user = request.user
    old_cost = seat_ledger.calculate_monthly_cost(user.purchased_seats, user.is_admin)
    try:
        user = seat_ledger.remove(user, quantity)
    except ServiceError as e:
        return service_error_response(e)

    new_cost = seat_ledger.calculate_monthly_cost(user.purchased_seats, user.is_admin)
    return Response({
        'success': True,
        'message': f"Successfully removed {quantity} seats",
        'seats': _seat_summary(user),
        'billing': {
            'oldMonthlyCost': float(old_cost),
            'newMonthlyCost': float(new_cost),
            'monthlySavings': float(old_cost - new_cost),
        }
    }, status=status.HTTP_200_OK)
