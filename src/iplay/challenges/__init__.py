from iplay.challenges.daily import challenge_id, generate_daily_challenge
from iplay.challenges.question_bank import QUESTION_BANK

__all__ = ["QUESTION_BANK", "challenge_id", "generate_daily_challenge"]
