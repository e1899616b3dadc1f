"""Arithmetic captcha endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from throwback.database import get_db
from throwback.models.schemas import CaptchaResponse, CaptchaVerifyRequest, CaptchaVerifyResponse
from throwback.services.captcha_service import CaptchaService

router = APIRouter()


@router.get("/generate", response_model=CaptchaResponse)
def generate_captcha(db: Session = Depends(get_db)):
    """
    Generate a new captcha question.

    The challenge expires after a few minutes and can be answered once.
    """
    challenge = CaptchaService.generate(db)

    return CaptchaResponse(
        captcha_id=challenge.id,
        question=f"{challenge.question} = ?",
        expires_at=challenge.expires_at
    )


@router.post("/verify", response_model=CaptchaVerifyResponse)
def verify_captcha(payload: CaptchaVerifyRequest, db: Session = Depends(get_db)):
    """Check an answer. The challenge is consumed whatever the outcome."""
    return CaptchaVerifyResponse(valid=CaptchaService.verify(db, payload.captcha_id, payload.answer))
