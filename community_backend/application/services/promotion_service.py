"""
Promotional period expiry job.

Moves members whose promotional window has ended onto the tier fee of their
community, on Stripe and in the database, and records each change in the
fee audit trail.

Dependencies: community_backend.boundary.db.CRUD, community_backend.boundary.payments,
    community_backend.core.fees
System role: Scheduled fee maintenance
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from community_backend.boundary.db.CRUD.fee_change_crud import fee_change_crud
from community_backend.boundary.db.CRUD.member_crud import member_crud
from community_backend.boundary.payments.stripe_client import StripeConnectClient
from community_backend.core.fees import FeeSchedule, calculate_platform_fee_percentage

logger = logging.getLogger(__name__)

PROMOTIONAL_PERIOD_ENDED = "promotional_period_ended"


@dataclass(frozen=True)
class PromotionTarget:
    """Plain values of one expired promotional member, detached from the session."""

    member_id: UUID
    community_id: UUID
    user_id: str
    members_count: int
    previous_fee: float
    subscription_id: str | None
    account_id: str | None


class PromotionService:
    """Ends promotional periods and applies the tier fee."""

    def __init__(
        self,
        db: AsyncSession,
        stripe_client: StripeConnectClient,
        fee_schedule: FeeSchedule | None = None,
    ) -> None:
        self.db = db
        self.stripe = stripe_client
        self.fee_schedule = fee_schedule or FeeSchedule()

    async def expire_promotional_periods(self, now: datetime | None = None) -> dict:
        """
        Process every active member whose promotional period has ended.

        Members are processed one at a time; a failure rolls back that
        member's work and is reported without stopping the run.

        Args:
            now: Reference time (defaults to current UTC time)

        Returns:
            dict: processed, successful, failed, failed_members, message
        """
        now = now or datetime.now(timezone.utc)
        members = await member_crud.get_expired_promotional(self.db, now)

        if not members:
            logger.info("No expired promotional members found")
            return {
                "message": "No expired promotional members found",
                "processed": 0,
                "successful": 0,
                "failed": 0,
                "failed_members": [],
            }

        targets = [
            PromotionTarget(
                member_id=member.id,
                community_id=member.community_id,
                user_id=member.user_id,
                members_count=member.community.members_count,
                previous_fee=member.platform_fee_percentage,
                subscription_id=member.stripe_subscription_id,
                account_id=member.community.stripe_account_id,
            )
            for member in members
        ]
        logger.info("Expiring promotional periods", extra={"count": len(targets)})

        successful = 0
        failed_members: list[dict] = []
        for target in targets:
            try:
                await self._end_promotion(target, now)
                await self.db.commit()
                successful += 1
            except Exception as e:
                await self.db.rollback()
                logger.error(
                    "Failed to end promotional period",
                    extra={
                        "member_id": str(target.member_id),
                        "community_id": str(target.community_id),
                        "error": str(e),
                    },
                )
                failed_members.append(
                    {"member_id": target.member_id, "user_id": target.user_id, "error": str(e)}
                )

        logger.info(
            "Promotional period updates completed",
            extra={"processed": len(targets), "successful": successful, "failed": len(failed_members)},
        )
        return {
            "message": "Promotional period updates completed",
            "processed": len(targets),
            "successful": successful,
            "failed": len(failed_members),
            "failed_members": failed_members,
        }

    async def _end_promotion(self, target: PromotionTarget, now: datetime) -> float:
        new_fee = calculate_platform_fee_percentage(target.members_count, self.fee_schedule)

        if target.subscription_id and target.account_id:
            await self.stripe.update_subscription(
                target.account_id,
                target.subscription_id,
                application_fee_percent=new_fee,
                metadata={
                    "promotional_period_ended": now.isoformat(),
                    "new_platform_fee_percentage": str(new_fee),
                },
            )

        await member_crud.update_by_id(
            self.db,
            target.member_id,
            platform_fee_percentage=new_fee,
            is_promotional_member=False,
            promotional_period_end=None,
        )
        await fee_change_crud.create(
            self.db,
            community_id=target.community_id,
            member_id=target.member_id,
            previous_fee_percentage=target.previous_fee,
            new_fee_percentage=new_fee,
            reason=PROMOTIONAL_PERIOD_ENDED,
            changed_at=now,
        )

        logger.info(
            "Promotional period ended",
            extra={
                "member_id": str(target.member_id),
                "community_id": str(target.community_id),
                "new_fee_percentage": new_fee,
            },
        )
        return new_fee
