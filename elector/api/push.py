"""
/api/push/subscribe — browser push subscription management.

    GET    : VAPID public key for the client's pushManager.subscribe()
    POST   : register (or refresh) the caller's subscription
    DELETE : deactivate one of the caller's endpoints
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from elector.api.deps import get_current_user_id, get_subscription_db, get_vapid
from elector.core.vapid import VapidConfig, validate_vapid_config
from elector.data.db import PushSubscriptionDB

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/push", tags=["push"])


class SubscriptionKeys(BaseModel):
    p256dh: str = Field(min_length=1)
    auth: str = Field(min_length=1)


class SubscriptionInfo(BaseModel):
    endpoint: str = Field(min_length=1)
    keys: SubscriptionKeys


class SubscribeRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    subscription: SubscriptionInfo
    user_agent: str | None = None


class UnsubscribeRequest(BaseModel):
    endpoint: str = Field(min_length=1)


@router.get("/subscribe")
def get_public_key(vapid: VapidConfig = Depends(get_vapid)) -> dict:
    return {"publicKey": vapid.public_key}


@router.post("/subscribe")
def subscribe(
    request: SubscribeRequest,
    user_id: str = Depends(get_current_user_id),
    vapid: VapidConfig = Depends(get_vapid),
    subscriptions: PushSubscriptionDB = Depends(get_subscription_db),
) -> dict:
    if not validate_vapid_config(vapid):
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Push notifications not configured on server",
        )

    info = request.subscription
    subscription, created = subscriptions.upsert(
        user_id,
        info.endpoint,
        info.keys.p256dh,
        info.keys.auth,
        user_agent=request.user_agent or None,
    )
    return {
        "success": True,
        "message": "Subscription created" if created else "Subscription updated",
        "subscriptionId": subscription.id,
    }


@router.delete("/subscribe")
def unsubscribe(
    request: UnsubscribeRequest,
    user_id: str = Depends(get_current_user_id),
    subscriptions: PushSubscriptionDB = Depends(get_subscription_db),
) -> dict:
    updated = subscriptions.deactivate(user_id, request.endpoint)
    return {"success": True, "message": "Subscription removed", "updated": updated}
