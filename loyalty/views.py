"""
API Views for the Loyalty application.
"""

from django.shortcuts import get_object_or_404
from rest_framework import filters, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView

from loyalty.exceptions import InvalidOrExpiredCodeError
from loyalty.models import LoyaltyAccount, LoyaltyConfig, PointTransaction, Reward
from loyalty.permissions import IsIntegrationClient, IsStaffUser
from loyalty.redemption import RedemptionService, get_active_redemptions, get_active_rewards
from loyalty.referrals import validate_referral_code
from loyalty.serializers import (
    BirthdayEventSerializer,
    CodeUsageRequestSerializer,
    CodeValidationRequestSerializer,
    LoyaltyAccountSerializer,
    LoyaltyConfigSerializer,
    PointTransactionSerializer,
    PurchaseEventSerializer,
    RedeemedRewardSerializer,
    RedemptionRequestSerializer,
    ReviewEventSerializer,
    RewardSerializer,
    SignupEventSerializer,
)
from loyalty.services import get_loyalty_config, get_loyalty_stats, normalize_email

# ---------------------------------------------------------------------------
# Integration endpoints (X-API-KEY)
# ---------------------------------------------------------------------------


class EventViewSet(viewsets.GenericViewSet):
    """
    Base for inbound events. The input serializer performs the award in save();
    the response renders the resulting ledger entry.
    """

    permission_classes = [IsIntegrationClient]
    output_serializer_class = PointTransactionSerializer

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = serializer.save()

        if result is None:
            return Response({"awarded": False, "detail": "No points awarded."}, status=status.HTTP_200_OK)
        return Response(self.output_serializer_class(result).data, status=status.HTTP_201_CREATED)


class PurchaseEventViewSet(EventViewSet):
    """
    POST /api/loyalty/events/purchases/
    Called by checkout once per completed order.
    """

    serializer_class = PurchaseEventSerializer


class ReviewEventViewSet(EventViewSet):
    """
    POST /api/loyalty/events/reviews/
    """

    serializer_class = ReviewEventSerializer


class BirthdayEventViewSet(EventViewSet):
    """
    POST /api/loyalty/events/birthdays/
    """

    serializer_class = BirthdayEventSerializer


class SignupEventViewSet(EventViewSet):
    """
    POST /api/loyalty/events/signups/
    Enrols the customer and handles an optional referral code.
    """

    serializer_class = SignupEventSerializer
    output_serializer_class = LoyaltyAccountSerializer


class RedemptionViewSet(viewsets.GenericViewSet):
    """
    POST /api/loyalty/redemptions/           redeem a reward
    POST /api/loyalty/redemptions/validate/  check a code before applying it
    POST /api/loyalty/redemptions/use/       consume a code on an order
    """

    permission_classes = [IsIntegrationClient]
    serializer_class = RedemptionRequestSerializer

    def create(self, request, *args, **kwargs):
        serializer = RedemptionRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = RedemptionService().redeem_reward(
            serializer.validated_data["reward_id"],
            serializer.validated_data["customer_id"],
            serializer.validated_data["email"],
        )
        if not result.success:
            return Response(
                {"success": False, "code": result.error_code, "message": result.message},
                status=status.HTTP_400_BAD_REQUEST,
            )

        return Response(
            {
                "success": True,
                "message": result.message,
                "redeemed_reward": RedeemedRewardSerializer(result.redeemed_reward).data,
            },
            status=status.HTTP_201_CREATED,
        )

    @action(detail=False, methods=["post"])
    def validate(self, request):
        serializer = CodeValidationRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        validation = RedemptionService().validate_reward_code(
            serializer.validated_data["code"], serializer.validated_data["email"]
        )
        data = {"valid": validation.valid, "message": validation.message, "redeemed_reward": None}
        if validation.valid:
            data["redeemed_reward"] = RedeemedRewardSerializer(validation.redeemed_reward).data
        return Response(data)

    @action(detail=False, methods=["post"])
    def use(self, request):
        serializer = CodeUsageRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            redeemed = RedemptionService().mark_reward_as_used(
                serializer.validated_data["code"], serializer.validated_data["order_id"]
            )
        except InvalidOrExpiredCodeError as e:
            return Response(
                {"success": False, "code": e.code, "message": e.message}, status=status.HTTP_400_BAD_REQUEST
            )
        return Response({"success": True, "redeemed_reward": RedeemedRewardSerializer(redeemed).data})


class ReferralViewSet(viewsets.GenericViewSet):
    """
    GET /api/loyalty/referrals/validate/?code=REF...
    Used by the signup flow before it submits the signup event.
    """

    permission_classes = [IsIntegrationClient]

    @action(detail=False, methods=["get"])
    def validate(self, request):
        code = request.query_params.get("code", "")
        referrer = validate_referral_code(code)
        return Response({"valid": referrer is not None, "code": code.strip().upper()})


class AccountViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Read-only projections of customer accounts.
    Balances only ever change through ledger events.
    """

    permission_classes = [IsIntegrationClient | IsStaffUser]
    serializer_class = LoyaltyAccountSerializer
    lookup_field = "customer_email"
    lookup_value_regex = "[^/]+"

    # Enable search functionality (e.g., ?search=jane@)
    filter_backends = [filters.SearchFilter]
    search_fields = ["customer_email", "customer_name", "referral_code"]

    def get_queryset(self):
        return LoyaltyAccount.objects.all().order_by("id")

    def get_object(self):
        account = get_object_or_404(LoyaltyAccount, customer_email=normalize_email(self.kwargs["customer_email"]))
        self.check_object_permissions(self.request, account)
        return account

    @action(detail=True, methods=["get"])
    def transactions(self, request, customer_email=None):
        account = self.get_object()
        history = account.transactions.all().order_by("-created_at", "-id")
        return Response(PointTransactionSerializer(history, many=True).data)

    @action(detail=True, methods=["get"])
    def rewards(self, request, customer_email=None):
        account = self.get_object()
        return Response(RewardSerializer(get_active_rewards(account.tier), many=True).data)

    @action(detail=True, methods=["get"])
    def redemptions(self, request, customer_email=None):
        account = self.get_object()
        return Response(RedeemedRewardSerializer(get_active_redemptions(account.customer_email), many=True).data)


# ---------------------------------------------------------------------------
# Admin console endpoints (staff users)
# ---------------------------------------------------------------------------


class LoyaltyConfigView(APIView):
    """
    GET/PUT/PATCH /api/loyalty/config/
    """

    permission_classes = [IsStaffUser]

    def get(self, request):
        return Response(LoyaltyConfigSerializer(get_loyalty_config()).data)

    def put(self, request):
        return self._update(request, partial=False)

    def patch(self, request):
        return self._update(request, partial=True)

    def _update(self, request, partial):
        serializer = LoyaltyConfigSerializer(LoyaltyConfig.load(), data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(serializer.data)


class RewardViewSet(viewsets.ModelViewSet):
    """
    API endpoint for managing Rewards (the catalog).
    """

    permission_classes = [IsStaffUser]
    serializer_class = RewardSerializer

    def get_queryset(self):
        return Reward.objects.all().order_by("id")

    @action(detail=True, methods=["post"])
    def activate(self, request, pk=None):
        return self._set_active(True)

    @action(detail=True, methods=["post"])
    def deactivate(self, request, pk=None):
        return self._set_active(False)

    def _set_active(self, is_active):
        reward = self.get_object()
        reward.is_active = is_active
        reward.save(update_fields=["is_active", "updated_at"])
        return Response(RewardSerializer(reward).data)


class TransactionHistoryViewSet(viewsets.ReadOnlyModelViewSet):
    """
    GET /api/loyalty/transactions/
    Endpoint for the full ledger history.
    """

    permission_classes = [IsStaffUser]
    serializer_class = PointTransactionSerializer

    def get_queryset(self):
        queryset = PointTransaction.objects.select_related("account").order_by("-created_at", "-id")
        email = self.request.query_params.get("email")
        if email:
            queryset = queryset.filter(account__customer_email=normalize_email(email))
        return queryset


class LoyaltyStatsView(APIView):
    """
    GET /api/loyalty/stats/
    """

    permission_classes = [IsStaffUser]

    def get(self, request):
        return Response(get_loyalty_stats())
