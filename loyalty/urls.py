"""
URL routing for the loyalty application API.
"""

from django.urls import path
from rest_framework.routers import DefaultRouter

from loyalty.views import (
    AccountViewSet,
    BirthdayEventViewSet,
    LoyaltyConfigView,
    LoyaltyStatsView,
    PurchaseEventViewSet,
    RedemptionViewSet,
    ReferralViewSet,
    ReviewEventViewSet,
    RewardViewSet,
    SignupEventViewSet,
    TransactionHistoryViewSet,
)

router = DefaultRouter()
# Events raised by checkout, reviews and the signup flow (X-API-KEY)
router.register(r"events/purchases", PurchaseEventViewSet, basename="purchase-events")
router.register(r"events/reviews", ReviewEventViewSet, basename="review-events")
router.register(r"events/signups", SignupEventViewSet, basename="signup-events")
router.register(r"events/birthdays", BirthdayEventViewSet, basename="birthday-events")
router.register(r"redemptions", RedemptionViewSet, basename="redemptions")
router.register(r"referrals", ReferralViewSet, basename="referrals")
router.register(r"accounts", AccountViewSet, basename="accounts")  # Read Only
# Admin console (staff)
router.register(r"rewards", RewardViewSet, basename="rewards")
router.register(r"transactions", TransactionHistoryViewSet, basename="transactions")  # Read Only

urlpatterns = [
    path("config/", LoyaltyConfigView.as_view(), name="loyalty-config"),
    path("stats/", LoyaltyStatsView.as_view(), name="loyalty-stats"),
] + router.urls
