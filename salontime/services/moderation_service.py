"""
Review moderation
Keyword prefilter for obvious abuse, then Gemini classification.
Flagged reviews are hidden and, for serious categories, reported for human review.
"""
import json
import logging
import re
from dataclasses import dataclass
from typing import Optional

import google.generativeai as genai
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..cache import invalidate_salon_cache
from ..config import GEMINI_API_KEY, GEMINI_MODEL
from ..database import SessionLocal
from ..models import Review, ReviewReport, Salon

logger = logging.getLogger(__name__)

FLAG_TYPES = ("hateful", "inappropriate", "suicidal", "harassment", "spam", "fake")

# Flag types that open a report for a human moderator
REPORTABLE_FLAG_TYPES = {"hateful", "suicidal", "inappropriate", "harassment"}

KEYWORD_CONFIDENCE = 0.95

KEYWORD_PATTERNS: list[tuple[str, re.Pattern]] = [
    (
        "suicidal",
        re.compile(
            r"\b(kill(ing)?\s+myself|end(ing)?\s+my\s+life|want\s+to\s+die|suicid(e|al)|self[\s-]?harm)\b",
            re.IGNORECASE,
        ),
    ),
    (
        "harassment",
        re.compile(
            r"\b(i('| wi)ll\s+(kill|hurt|find)\s+you|kill\s+you|you\s+should\s+die|watch\s+your\s+back)\b",
            re.IGNORECASE,
        ),
    ),
    (
        "hateful",
        re.compile(
            r"\b(go\s+back\s+to\s+your\s+(own\s+)?country|subhumans?|(people|those)\s+like\s+(you|them)\s+(should|don.t\s+deserve))\b",
            re.IGNORECASE,
        ),
    ),
    (
        "spam",
        re.compile(
            r"(https?://\S+.*https?://\S+|\b(buy\s+now|click\s+here|free\s+money|crypto\s+giveaway|promo\s+code)\b)",
            re.IGNORECASE,
        ),
    ),
]

ANALYSIS_PROMPT = """You moderate customer reviews for a salon booking platform.
Decide whether the review below contains harmful content.

Categories:
- hateful: attacks on people based on race, religion, gender, sexuality, nationality or disability
- inappropriate: sexual content, graphic violence or explicit profanity aimed at people
- suicidal: expressions of self-harm or suicidal intent
- harassment: threats, doxxing or targeted abuse of staff or owners
- spam: advertising, links or content unrelated to the salon visit
- fake: clearly fabricated or paid review content

Honest negative feedback about the service is allowed and must not be flagged.

Review:
\"\"\"{content}\"\"\"

Reply with JSON only, in this exact format:
{{
  "flagged": true or false,
  "flagType": one of "hateful", "inappropriate", "suicidal", "harassment", "spam", "fake", or null,
  "confidence": number between 0 and 1,
  "notes": "short explanation"
}}"""


@dataclass
class ModerationResult:
    flagged: bool
    flag_type: Optional[str]
    confidence: float
    notes: str


def clamp_confidence(value) -> float:
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return 0.0
    if confidence != confidence:  # NaN
        return 0.0
    return max(0.0, min(1.0, confidence))


def keyword_prefilter(content: str) -> Optional[ModerationResult]:
    """Short-circuit obvious abuse without calling the model"""
    for flag_type, pattern in KEYWORD_PATTERNS:
        match = pattern.search(content)
        if match:
            return ModerationResult(
                flagged=True,
                flag_type=flag_type,
                confidence=KEYWORD_CONFIDENCE,
                notes=f"Matched keyword filter: {flag_type}",
            )
    return None


def _strip_code_fences(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        text = re.sub(r"^```(?:json)?\s*", "", text)
        text = re.sub(r"\s*```$", "", text)
    return text.strip()


def _call_gemini(prompt: str) -> str:
    genai.configure(api_key=GEMINI_API_KEY)
    model = genai.GenerativeModel(GEMINI_MODEL)
    response = model.generate_content(prompt)
    return response.text


def parse_model_reply(text: str) -> ModerationResult:
    """
    Parse the model's JSON reply.

    Raises:
        ValueError: if the reply is not JSON or "flagged" is not a boolean
    """
    analysis = json.loads(_strip_code_fences(text))
    if not isinstance(analysis, dict) or not isinstance(analysis.get("flagged"), bool):
        raise ValueError("Invalid AI response: flagged must be boolean")

    flag_type = analysis.get("flagType") or analysis.get("flag_type")
    if flag_type not in FLAG_TYPES:
        flag_type = None

    return ModerationResult(
        flagged=analysis["flagged"],
        flag_type=flag_type if analysis["flagged"] else None,
        confidence=clamp_confidence(analysis.get("confidence", 0)),
        notes=str(analysis.get("notes") or ""),
    )


def analyze_content(content: Optional[str]) -> ModerationResult:
    """Classify review text. Never raises: failures come back unflagged with a note."""
    if not content or not content.strip():
        return ModerationResult(False, None, 0.0, "No content to analyze")

    prefiltered = keyword_prefilter(content)
    if prefiltered:
        logger.info(f"🚩 Keyword filter flagged review content as {prefiltered.flag_type}")
        return prefiltered

    if not GEMINI_API_KEY:
        logger.debug("GEMINI_API_KEY not configured - skipping AI analysis")
        return ModerationResult(False, None, 0.0, "AI analysis not available")

    try:
        reply = _call_gemini(ANALYSIS_PROMPT.format(content=content))
        return parse_model_reply(reply)
    except Exception as e:
        logger.error(f"❌ AI content analysis failed: {str(e)}")
        return ModerationResult(False, None, 0.0, f"Analysis error: {str(e)}")


def update_salon_rating(db: Session, salon_id: str) -> None:
    """Recompute rating average/count from visible reviews"""
    average, count = (
        db.query(func.avg(Review.rating), func.count(Review.id))
        .filter(Review.salon_id == salon_id, Review.is_visible.is_(True))
        .one()
    )
    salon = db.query(Salon).filter(Salon.id == salon_id).first()
    if not salon:
        return
    salon.rating_average = round(float(average), 2) if average is not None else 0
    salon.rating_count = count or 0
    db.commit()
    invalidate_salon_cache(salon_id)


def apply_moderation(db: Session, review: Review, force: bool = False) -> Optional[ModerationResult]:
    """
    Analyze a review and record the outcome on it.

    Already-flagged reviews are left alone unless force is set (user reports).
    Returns None when skipped.
    """
    if review.ai_analyzed and review.ai_flag_type and not force:
        logger.debug(f"Review {review.id} already flagged - skipping analysis")
        return None

    result = analyze_content(review.comment)

    review.ai_analyzed = True
    review.ai_confidence = result.confidence
    review.ai_notes = result.notes

    if result.flagged:
        review.ai_flag_type = result.flag_type
        review.is_visible = False
        logger.warning(f"🚩 Review {review.id} flagged as {result.flag_type} ({result.confidence:.2f}) - hidden")

        if result.flag_type in REPORTABLE_FLAG_TYPES:
            existing = (
                db.query(ReviewReport)
                .filter(
                    ReviewReport.review_id == review.id,
                    ReviewReport.reporter_id.is_(None),
                    ReviewReport.ai_flagged.is_(True),
                )
                .first()
            )
            if not existing:
                db.add(
                    ReviewReport(
                        review_id=review.id,
                        reporter_id=None,
                        reportee_id=review.client_id,
                        reason=result.flag_type,
                        description=f"AI automatically flagged: {result.notes}",
                        status="pending",
                        ai_flagged=True,
                        ai_flag_reason=result.notes,
                        human_action_required=True,
                    )
                )

    db.commit()

    if result.flagged:
        update_salon_rating(db, review.salon_id)

    return result


def moderate_review(review_id: str, force: bool = False) -> None:
    """Background task: moderate a review in its own session"""
    db = SessionLocal()
    try:
        review = db.query(Review).filter(Review.id == review_id).first()
        if not review or review.deleted_at is not None:
            logger.warning(f"⚠️ Review {review_id} not found for moderation")
            return
        apply_moderation(db, review, force=force)
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Moderation failed for review {review_id}: {str(e)}")
    finally:
        db.close()
