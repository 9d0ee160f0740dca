"""
AI triage for inbox messages

Asks OpenAI for a structured JSON verdict (summary, category, urgency,
lead score, next action, extracted details) and writes it back onto the
message and its conversation.
"""

import json
import logging
from datetime import datetime
from typing import Optional

from openai import OpenAI
from sqlalchemy.orm import Session

from ..config import OPENAI_API_KEY, OPENAI_MODEL
from ..models import Account
from ..models_messaging import Conversation, Customer, Message

logger = logging.getLogger(__name__)

AI_CATEGORIES = (
    "lead",
    "customer_question",
    "job_update",
    "billing_or_payment",
    "scheduling",
    "internal_or_personal",
    "spam_or_ads",
    "other",
)
URGENCY_LEVELS = ("low", "normal", "high")
LEAD_SCORES = ("A", "B", "C")
EXTRACTED_FIELDS = ("address", "rooms", "deadline", "budget_hint")


class AIProcessingError(Exception):
    pass


def build_prompt(message: Message, customer: Customer, business_name: str) -> str:
    return f"""
You are the messaging assistant for a small home services company called {business_name}.

Incoming message:
"{message.message_text or ''}"

Customer info:
- Name: {customer.full_name or 'Unknown'}
- Email: {customer.email or 'Unknown'}
- Phone: {customer.phone or 'Unknown'}
- Address: {customer.address or 'Unknown'}

IMPORTANT CLASSIFICATION RULES:
- Classify newsletters, ads, cold sales pitches, SaaS tool promotions, and generic marketing as "spam_or_ads".
- Only real business messages belong in the main inbox: leads, customer questions, job updates, scheduling, billing.
- Personal/family/internal messages are "internal_or_personal".
- If unsure, use "other".

Return JSON with:
- summary: short summary of what the client wants
- category: one of {json.dumps(list(AI_CATEGORIES))}
- urgency: one of {json.dumps(list(URGENCY_LEVELS))}
- lead_score: one of {json.dumps(list(LEAD_SCORES))}
- next_action: short suggestion of what the business owner should do next
- extracted: object with {{{", ".join(EXTRACTED_FIELDS)}}}
"""


def parse_ai_response(content: Optional[str]) -> dict:
    """Validate the model output, coercing anything unexpected to safe values"""
    if not content:
        raise AIProcessingError("No content returned from OpenAI")
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise AIProcessingError("AI response parsing failed") from e
    if not isinstance(data, dict):
        raise AIProcessingError("AI response was not a JSON object")

    category = data.get("category")
    urgency = data.get("urgency")
    lead_score = str(data.get("lead_score") or "").upper() or None
    extracted = data.get("extracted") if isinstance(data.get("extracted"), dict) else {}

    return {
        "summary": data.get("summary") or None,
        "category": category if category in AI_CATEGORIES else "other",
        "urgency": urgency if urgency in URGENCY_LEVELS else None,
        "lead_score": lead_score if lead_score in LEAD_SCORES else None,
        "next_action": data.get("next_action") or None,
        "extracted": {key: extracted.get(key) for key in EXTRACTED_FIELDS},
    }


def get_openai_client() -> OpenAI:
    return OpenAI(api_key=OPENAI_API_KEY)


def process_message(db: Session, message_id: int, client: Optional[OpenAI] = None) -> Optional[dict]:
    """
    Run AI triage for one message. Returns the stored verdict, or None when
    OpenAI is not configured. Raises AIProcessingError on lookup or model failures.
    """
    if not OPENAI_API_KEY and client is None:
        logger.warning("⚠️ OpenAI API key missing, skipping AI processing")
        return None

    message = db.query(Message).filter(Message.id == message_id).first()
    if not message:
        raise AIProcessingError(f"Message {message_id} not found")
    customer = db.query(Customer).filter(Customer.id == message.customer_id).first()
    conversation = db.query(Conversation).filter(Conversation.id == message.conversation_id).first()
    if not customer or not conversation:
        raise AIProcessingError(f"Context for message {message_id} not found")
    account = db.query(Account).filter(Account.id == message.account_id).first()

    client = client or get_openai_client()
    response = client.chat.completions.create(
        model=OPENAI_MODEL,
        messages=[{"role": "user", "content": build_prompt(message, customer, account.name if account else "us")}],
        response_format={"type": "json_object"},
    )
    verdict = parse_ai_response(response.choices[0].message.content if response.choices else None)

    message.ai_summary = verdict["summary"]
    message.ai_category = verdict["category"]
    message.ai_urgency = verdict["urgency"]
    message.ai_next_action = verdict["next_action"]
    message.ai_extracted = verdict["extracted"]
    message.ai_processed_at = datetime.utcnow()
    if verdict["lead_score"]:
        conversation.lead_score = verdict["lead_score"]
        conversation.updated_at = datetime.utcnow()
    db.commit()

    logger.info(
        f"🤖 Message {message_id} triaged: category={verdict['category']}, "
        f"urgency={verdict['urgency']}, lead_score={verdict['lead_score']}"
    )
    return verdict
