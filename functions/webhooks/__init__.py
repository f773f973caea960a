# Stripe webhook -> subscription record synchronization
from .authenticator import EventAuthenticator, VerifiedEvent
from .classifier import (
    Ignored,
    PaymentFailed,
    PaymentSucceeded,
    SubscriptionRemoved,
    SubscriptionUpserted,
    classify,
)
from .pipeline import WebhookPipeline, build_pipeline
from .reporter import Outcome, report

__all__ = [
    "EventAuthenticator",
    "VerifiedEvent",
    "classify",
    "SubscriptionUpserted",
    "SubscriptionRemoved",
    "PaymentSucceeded",
    "PaymentFailed",
    "Ignored",
    "WebhookPipeline",
    "build_pipeline",
    "Outcome",
    "report",
]
