"""
In-process ledger store

Backs the test suite and the REWARDS_MOCK demo mode. Every read hands out a
detached copy, so callers cannot mutate stored state behind the store's back.
Multi-row writes run under _atomic(), which puts every row back if any step
raises.
"""

from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple
import itertools
import logging

from app.models import (
    WalletProfile,
    PointsHistory,
    TaskCompletion,
    CompletionStatus,
    Referral,
    utc_now,
)
from app.repositories.ledger import LedgerStore, PointsAward, PROFILE_SORT_FIELDS, new_profile

logger = logging.getLogger(__name__)

def _copy(item):
    return item.copy() if item is not None else None

class InMemoryLedgerStore(LedgerStore):
    """Ledger store kept in plain dictionaries"""

    def __init__(self):
        self.profiles: Dict[str, WalletProfile] = {}
        self.history: List[PointsHistory] = []
        self.completions: Dict[int, TaskCompletion] = {}
        self.referrals: Dict[int, Referral] = {}
        self._ids = {
            "profile": itertools.count(1),
            "history": itertools.count(1),
            "completion": itertools.count(1),
            "referral": itertools.count(1),
        }

    def reset(self):
        self.__init__()

    @contextmanager
    def _atomic(self):
        profiles = {key: p.copy() for key, p in self.profiles.items()}
        history = list(self.history)
        completions = {key: c.copy() for key, c in self.completions.items()}
        referrals = {key: r.copy() for key, r in self.referrals.items()}
        try:
            yield
        except Exception:
            self.profiles = profiles
            self.history = history
            self.completions = completions
            self.referrals = referrals
            raise

    # Profiles

    async def get_profile(self, wallet_address: str) -> Optional[WalletProfile]:
        return _copy(self.profiles.get(wallet_address))

    async def get_or_create_profile(self, wallet_address: str, chain_type: str = "evm") -> WalletProfile:
        profile = self.profiles.get(wallet_address)
        if profile is None:
            profile = new_profile(wallet_address, chain_type)
            profile.id = next(self._ids["profile"])
            self.profiles[wallet_address] = profile
            logger.info(f"Created wallet profile {wallet_address} ({chain_type})")
        return profile.copy()

    async def update_profile(self, wallet_address: str, **changes: Any) -> Optional[WalletProfile]:
        return await self.update_profile_if(wallet_address, {}, changes)

    async def update_profile_if(
        self,
        wallet_address: str,
        expected: Dict[str, Any],
        changes: Dict[str, Any],
        awards: Sequence[PointsAward] = (),
    ) -> Optional[WalletProfile]:
        profile = self.profiles.get(wallet_address)
        if profile is None:
            return None
        if any(getattr(profile, key) != value for key, value in expected.items()):
            return None

        with self._atomic():
            for key, value in changes.items():
                setattr(profile, key, value)
            profile.updated_at = utc_now()
            for award in awards:
                self._append_points(wallet_address, award)
        return self.profiles[wallet_address].copy()

    async def set_referral_code(self, wallet_address: str, code: str) -> Optional[str]:
        profile = self.profiles.get(wallet_address)
        if profile is None:
            return None
        if profile.referral_code:
            return profile.referral_code
        if any(p.referral_code == code for p in self.profiles.values()):
            return None
        profile.referral_code = code
        profile.updated_at = utc_now()
        return code

    async def find_profile_by_referral_code(self, code: str) -> Optional[WalletProfile]:
        for profile in self.profiles.values():
            if profile.referral_code == code:
                return profile.copy()
        return None

    async def list_verified_discord_profiles(self) -> List[WalletProfile]:
        return [
            p.copy() for p in sorted(self.profiles.values(), key=lambda p: p.id)
            if p.discord_verified and p.discord_id
        ]

    async def list_profiles(
        self,
        offset: int = 0,
        limit: int = 20,
        sort_by: str = "created_at",
        descending: bool = True,
    ) -> Tuple[List[WalletProfile], int]:
        if sort_by not in PROFILE_SORT_FIELDS:
            sort_by = "created_at"
        ordered = sorted(self.profiles.values(), key=lambda p: p.id)
        ordered.sort(key=lambda p: getattr(p, sort_by), reverse=descending)
        return [p.copy() for p in ordered[offset:offset + limit]], len(ordered)

    async def search_profiles(self, query: str, offset: int = 0, limit: int = 20) -> Tuple[List[WalletProfile], int]:
        needle = query.strip().lower()

        def matches(profile: WalletProfile) -> bool:
            fields = (profile.wallet_address, profile.x_username, profile.discord_username)
            return any(needle in value.lower() for value in fields if value)

        found = sorted(
            (p for p in self.profiles.values() if matches(p)),
            key=lambda p: p.created_at,
            reverse=True,
        )
        return [p.copy() for p in found[offset:offset + limit]], len(found)

    async def top_referrers(self, limit: int = 10) -> List[WalletProfile]:
        ranked = sorted(
            (p for p in self.profiles.values() if p.referral_count >= 1),
            key=lambda p: (-p.referral_count, p.id),
        )
        return [p.copy() for p in ranked[:limit]]

    # Points

    async def apply_points(
        self,
        wallet_address: str,
        delta: int,
        transaction_type: str,
        description: Optional[str] = None,
    ) -> PointsHistory:
        return self._append_points(wallet_address, PointsAward(delta, transaction_type, description)).copy()

    def _append_points(self, wallet_address: str, award: PointsAward) -> PointsHistory:
        profile = self.profiles.get(wallet_address)
        if profile is None:
            raise LookupError(f"No wallet profile for {wallet_address}")

        profile.total_points += award.delta
        profile.updated_at = utc_now()
        entry = PointsHistory(
            id=next(self._ids["history"]),
            wallet_address=wallet_address,
            transaction_type=award.transaction_type,
            points_change=award.delta,
            balance_after=profile.total_points,
            description=award.description,
            created_at=utc_now(),
        )
        self.history.append(entry)
        return entry

    async def latest_positive_points(self, wallet_address: str, transaction_type: str) -> Optional[int]:
        for entry in reversed(self.history):
            if (
                entry.wallet_address == wallet_address
                and entry.transaction_type == transaction_type
                and entry.points_change > 0
            ):
                return entry.points_change
        return None

    async def list_history(
        self,
        wallet_address: Optional[str] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> Tuple[List[PointsHistory], int]:
        entries = [
            e for e in reversed(self.history)
            if wallet_address is None or e.wallet_address == wallet_address
        ]
        return [e.copy() for e in entries[offset:offset + limit]], len(entries)

    async def sum_history(self, wallet_address: str) -> int:
        return sum(e.points_change for e in self.history if e.wallet_address == wallet_address)

    # Task completions

    async def add_task_completion(
        self,
        wallet_address: str,
        task_type: str,
        points_awarded: int,
        completion_date: Optional[str] = None,
        metadata: Optional[str] = None,
        award: Optional[PointsAward] = None,
    ) -> Optional[TaskCompletion]:
        if completion_date is not None and await self.has_active_completion(
            wallet_address, task_type, completion_date
        ):
            logger.info(f"Duplicate {task_type} completion for {wallet_address} on {completion_date}")
            return None

        completion = TaskCompletion(
            id=next(self._ids["completion"]),
            wallet_address=wallet_address,
            task_type=task_type,
            points_awarded=points_awarded,
            completion_date=completion_date,
            metadata_json=metadata,
            status=CompletionStatus.ACTIVE.value,
            completed_at=utc_now(),
            revoked_at=None,
        )
        with self._atomic():
            self.completions[completion.id] = completion
            if award:
                self._append_points(wallet_address, award)
        return completion.copy()

    async def get_task_completion(self, completion_id: int) -> Optional[TaskCompletion]:
        return _copy(self.completions.get(completion_id))

    async def has_active_completion(
        self,
        wallet_address: str,
        task_type: str,
        completion_date: Optional[str] = None,
    ) -> bool:
        return any(
            c.wallet_address == wallet_address
            and c.task_type == task_type
            and c.is_active
            and (completion_date is None or c.completion_date == completion_date)
            for c in self.completions.values()
        )

    async def revoke_completion(
        self,
        completion_id: int,
        transaction_type: str,
        description: Optional[str] = None,
    ) -> Optional[TaskCompletion]:
        completion = self.completions.get(completion_id)
        if completion is None or not completion.is_active:
            return None
        with self._atomic():
            completion.status = CompletionStatus.REVOKED.value
            completion.revoked_at = utc_now()
            if completion.points_awarded:
                self._append_points(
                    completion.wallet_address,
                    PointsAward(-completion.points_awarded, transaction_type, description),
                )
        return self.completions[completion_id].copy()

    def _newest_first(self, completions) -> List[TaskCompletion]:
        return sorted(completions, key=lambda c: (c.completed_at, c.id), reverse=True)

    async def list_active_completions_with_metadata(
        self,
        task_type: str,
        wallet_address: Optional[str] = None,
    ) -> List[TaskCompletion]:
        found = [
            c for c in self.completions.values()
            if c.task_type == task_type
            and c.is_active
            and c.metadata_json is not None
            and (wallet_address is None or c.wallet_address == wallet_address)
        ]
        return [c.copy() for c in self._newest_first(found)]

    async def list_completions(self, task_type: str, completion_date: Optional[str] = None) -> List[TaskCompletion]:
        found = [
            c for c in self.completions.values()
            if c.task_type == task_type
            and (completion_date is None or c.completion_date == completion_date)
        ]
        return [c.copy() for c in self._newest_first(found)]

    async def recent_completions(self, wallet_address: str, task_type: str, limit: int = 30) -> List[TaskCompletion]:
        found = [
            c for c in self.completions.values()
            if c.wallet_address == wallet_address and c.task_type == task_type
        ]
        return [c.copy() for c in self._newest_first(found)[:limit]]

    async def count_completions(self, wallet_address: Optional[str] = None) -> int:
        return sum(
            1 for c in self.completions.values()
            if wallet_address is None or c.wallet_address == wallet_address
        )

    async def count_daily_active(self, completion_date: str) -> int:
        return len({
            c.wallet_address for c in self.completions.values()
            if c.completion_date == completion_date
        })

    # Referrals

    async def create_referral(self, referrer_wallet: str, referred_wallet: str, code: str) -> Optional[Referral]:
        referred = self.profiles.get(referred_wallet)
        if referred is None or referred.referred_by is not None:
            return None
        if any(r.referred_wallet == referred_wallet for r in self.referrals.values()):
            return None

        referred.referred_by = code
        referred.updated_at = utc_now()
        referral = Referral(
            id=next(self._ids["referral"]),
            referrer_wallet=referrer_wallet,
            referred_wallet=referred_wallet,
            referral_code=code,
            referrer_points=0,
            referred_points=0,
            referrer_claimed=False,
            referred_claimed=False,
            created_at=utc_now(),
            claimed_at=None,
        )
        self.referrals[referral.id] = referral
        return referral.copy()

    async def get_referral_for_referred(self, referred_wallet: str) -> Optional[Referral]:
        for referral in self.referrals.values():
            if referral.referred_wallet == referred_wallet:
                return referral.copy()
        return None

    async def claim_referral(
        self,
        referral_id: int,
        referrer_award: PointsAward,
        referred_award: PointsAward,
    ) -> Optional[Referral]:
        referral = self.referrals.get(referral_id)
        if referral is None or referral.referrer_claimed:
            return None
        with self._atomic():
            referral.referrer_claimed = True
            referral.referred_claimed = True
            referral.claimed_at = utc_now()
            referral.referrer_points = referrer_award.delta
            referral.referred_points = referred_award.delta
            self._append_points(referral.referrer_wallet, referrer_award)
            self._append_points(referral.referred_wallet, referred_award)
            self._recompute_referral_stats(referral.referrer_wallet)
        return self.referrals[referral_id].copy()

    async def list_referrals_by_referrer(self, referrer_wallet: str) -> List[Referral]:
        found = [r for r in self.referrals.values() if r.referrer_wallet == referrer_wallet]
        found.sort(key=lambda r: (r.created_at, r.id), reverse=True)
        return [r.copy() for r in found]

    async def list_referrals(self, offset: int = 0, limit: int = 20, descending: bool = True) -> Tuple[List[Referral], int]:
        ordered = sorted(self.referrals.values(), key=lambda r: r.id)
        ordered.sort(key=lambda r: r.created_at, reverse=descending)
        return [r.copy() for r in ordered[offset:offset + limit]], len(ordered)

    def _recompute_referral_stats(self, referrer_wallet: str) -> None:
        profile = self.profiles.get(referrer_wallet)
        if profile is None:
            return
        rows = [r for r in self.referrals.values() if r.referrer_wallet == referrer_wallet]
        profile.referral_count = sum(1 for r in rows if r.referrer_claimed)
        profile.referral_points_earned = sum(r.referrer_points or 0 for r in rows)
        profile.updated_at = utc_now()

    # Aggregates

    async def profile_totals(self) -> Dict[str, int]:
        profiles = list(self.profiles.values())
        return {
            "total_users": len(profiles),
            "total_points": sum(p.total_points for p in profiles),
            "x_connected": sum(1 for p in profiles if p.x_connected),
            "discord_connected": sum(1 for p in profiles if p.discord_connected),
        }

    async def referral_totals(self) -> Dict[str, int]:
        referrals = list(self.referrals.values())
        return {
            "total": len(referrals),
            "claimed": sum(1 for r in referrals if r.referrer_claimed),
            "active_referrers": len({r.referrer_wallet for r in referrals}),
        }

    async def referrer_counts(self) -> List[int]:
        return [p.referral_count for p in self.profiles.values() if p.referral_count >= 1]

    async def profile_created_since(self, since: datetime) -> List[datetime]:
        return [p.created_at for p in self.profiles.values() if p.created_at >= since]

    async def completions_since(self, since: datetime) -> List[datetime]:
        return [c.completed_at for c in self.completions.values() if c.completed_at >= since]
