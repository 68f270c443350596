"""Daily challenge generation.

One document per calendar day (Asia/Kolkata by default), keyed
``challenge_YYYY-MM-DD`` so regenerating a day overwrites it.
"""

from __future__ import annotations

import copy
import logging
import random
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Any

from iplay import collection_names as cn
from iplay.challenges.question_bank import QUESTION_BANK
from iplay.store import DocumentStore

logger = logging.getLogger(__name__)

QUESTIONS_PER_CHALLENGE = 5
XP_REWARD = 50


def challenge_id(day: date) -> str:
    """Document id for a calendar day, e.g. 'challenge_2026-03-01'."""
    return f"challenge_{day.isoformat()}"


def day_window(day: date, tz: tzinfo) -> tuple[datetime, datetime]:
    """(start of day, start of next day) in ``tz``."""
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return start, end


def pick_questions(
    bank: list[dict[str, Any]],
    count: int = QUESTIONS_PER_CHALLENGE,
    rng: random.Random | None = None,
) -> list[dict[str, Any]]:
    """Draw ``count`` distinct questions uniformly without replacement."""
    if len(bank) < count:
        msg = f"Question bank has {len(bank)} questions, need {count}"
        raise ValueError(msg)
    sampler = rng or random.SystemRandom()
    return [copy.deepcopy(q) for q in sampler.sample(bank, count)]


async def generate_daily_challenge(
    store: DocumentStore,
    tz: tzinfo,
    *,
    now: datetime | None = None,
    question_count: int = QUESTIONS_PER_CHALLENGE,
    xp_reward: int = XP_REWARD,
    bank: list[dict[str, Any]] | None = None,
    rng: random.Random | None = None,
) -> dict[str, Any]:
    """Create (or overwrite) today's challenge and return the stored document."""
    if now is None:
        now = datetime.now(timezone.utc)
    today = now.astimezone(tz).date()
    starts_at, expires_at = day_window(today, tz)

    challenge = {
        "id": challenge_id(today),
        "date": starts_at,
        "questions": pick_questions(bank or QUESTION_BANK, question_count, rng),
        "xpReward": xp_reward,
        "expiresAt": expires_at,
    }
    await store.set(cn.DAILY_CHALLENGES, challenge["id"], challenge)
    logger.info("Daily challenge generated: %s", challenge["id"])
    return challenge
