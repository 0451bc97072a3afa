import logging

from fastapi import APIRouter

from app.models.inquiry import VisaQuestion

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["inquiries"])


@router.post("/visa-question")
def submit_visa_question(question: VisaQuestion):
    logger.info("Visa question received: %s", question.model_dump(by_alias=True, exclude_none=True))
    return {
        "success": True,
        "message": "Visa question received. We'll process it soon."
    }
