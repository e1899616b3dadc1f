"""Single-use arithmetic captcha."""

from sqlalchemy.orm import Session
from datetime import datetime, timedelta
from typing import Optional, Tuple
from uuid import UUID
import secrets

from throwback.config import settings
from throwback.models.security import CaptchaChallenge
from throwback.utils.security import hash_captcha_answer

OPERATIONS = ("+", "-", "*")


def _make_question() -> Tuple[str, int]:
    """Random arithmetic question and its answer (results are never negative)."""
    operation = secrets.choice(OPERATIONS)

    if operation == "+":
        left, right = secrets.randbelow(50) + 1, secrets.randbelow(50) + 1
        answer = left + right
    elif operation == "-":
        left, right = secrets.randbelow(50) + 25, secrets.randbelow(25) + 1
        answer = left - right
    else:
        left, right = secrets.randbelow(10) + 1, secrets.randbelow(10) + 1
        answer = left * right

    return f"{left} {operation} {right}", answer


class CaptchaService:
    """Service for captcha generation and verification."""

    @staticmethod
    def generate(db: Session) -> CaptchaChallenge:
        """Create and persist a new challenge."""
        question, answer = _make_question()

        challenge = CaptchaChallenge(
            question=question,
            answer_hash="",
            expires_at=datetime.utcnow() + timedelta(seconds=settings.CAPTCHA_EXPIRE_SECONDS)
        )
        db.add(challenge)
        db.flush()

        challenge.answer_hash = hash_captcha_answer(str(challenge.id), str(answer))
        db.commit()
        db.refresh(challenge)

        return challenge

    @staticmethod
    def verify(db: Session, captcha_id: Optional[str], answer: Optional[str]) -> bool:
        """
        Check an answer. Each challenge can be checked only once.

        Args:
            db: Database session
            captcha_id: Challenge id returned by generate
            answer: User's answer

        Returns:
            True if the challenge exists, has not expired and the answer matches
        """
        if not captcha_id or answer is None:
            return False

        try:
            challenge_id = UUID(str(captcha_id))
        except ValueError:
            return False

        challenge = db.query(CaptchaChallenge).filter(CaptchaChallenge.id == challenge_id).first()
        if not challenge:
            return False

        is_valid = (
            challenge.expires_at >= datetime.utcnow()
            and secrets.compare_digest(
                challenge.answer_hash,
                hash_captcha_answer(str(challenge.id), str(answer))
            )
        )

        db.delete(challenge)
        db.commit()

        return is_valid

    @staticmethod
    def cleanup_expired(db: Session) -> int:
        count = db.query(CaptchaChallenge).filter(
            CaptchaChallenge.expires_at < datetime.utcnow()
        ).delete(synchronize_session=False)
        db.commit()
        return count
