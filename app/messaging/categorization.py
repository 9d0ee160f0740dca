"""
Keyword-based email categorization

Fallback classifier for summarized emails when no model verdict is
available. Categories: spending, billing, leads, other, junk.
"""

import re
from typing import Optional

SPENDING_KEYWORDS = (
    "receipt", "invoice", "payment", "paid", "charge",
    "cost", "expense", "purchase", "bought", "order",
)
BILLING_KEYWORDS = ("bill", "statement", "due", "owing", "balance", "outstanding", "reminder")
LEAD_KEYWORDS = (
    "quote", "estimate", "interested", "need service",
    "looking for", "contact me", "call me", "schedule",
)
JUNK_KEYWORDS = (
    "unsubscribe", "newsletter", "promotional", "advertisement", "marketing",
    "special offer", "limited time", "free trial", "subscribe", "click here",
    "buy now", "sale", "discount", "deal", "spam", "no-reply", "noreply",
)
NON_BUSINESS_KEYWORDS = (
    "security alert", "sign-in", "verification code", "password reset",
    "account recovery", "login attempt", "confirm your email",
)

AMOUNT_PATTERNS = (
    re.compile(r"\$\s*(\d+(?:\.\d{2})?)"),
    re.compile(r"(\d+(?:\.\d{2})?)\s*dollars?", re.I),
    re.compile(r"total:?\s*\$?(\d+(?:\.\d{2})?)", re.I),
    re.compile(r"amount:?\s*\$?(\d+(?:\.\d{2})?)", re.I),
    re.compile(r"price:?\s*\$?(\d+(?:\.\d{2})?)", re.I),
)
VENDOR_PATTERNS = (
    re.compile(r"(?:from|at|with)\s+([A-Z][a-z]+(?:\s+[A-Z][a-z]+)*)", re.I),
    re.compile(r"([A-Z][a-z]+(?:\s+[A-Z][a-z]+)*)\s+(?:receipt|invoice|charge)", re.I),
)
NOT_VENDORS = ("security", "alert", "google", "verification", "account")

INVOICE_NUMBER_RE = re.compile(r"(?:invoice|bill|statement)\s*#?\s*([A-Z0-9-]+)", re.I)
DUE_AMOUNT_RE = re.compile(r"(?:total|amount|balance|due)\s*\$?(\d+(?:\.\d{2})?)", re.I)
DUE_DATE_RE = re.compile(r"(?:due|by)\s+(\d{1,2}[-/]\d{1,2}[-/]\d{2,4}|\w+\s+\d{1,2},?\s+\d{2,4})", re.I)

NAME_RE = re.compile(r"(?:my name is|this is|i am)\s+([A-Z][a-z]+(?:\s+[A-Z][a-z]+)*)", re.I)
EMAIL_RE = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")
PHONE_RE = re.compile(r"(\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4})")
COMPANY_RE = re.compile(
    r"(?:from|at|with)\s+([A-Z][a-z]+(?:\s+[A-Z][a-z]+)*\s+(?:LLC|Inc|Corp|Company|LLP|Ltd)?)", re.I
)


def count_keywords(content: str, keywords) -> int:
    return sum(1 for keyword in keywords if keyword in content)


def extract_spending_data(content: str) -> dict:
    amount = 0.0
    for pattern in AMOUNT_PATTERNS:
        match = pattern.search(content)
        if match:
            value = float(match.group(1))
            if 0 < value < 1_000_000:
                amount = value
                break

    vendor = None
    for pattern in VENDOR_PATTERNS:
        match = pattern.search(content)
        if match:
            candidate = match.group(1)
            if (
                "http" not in candidate
                and "www" not in candidate
                and candidate.lower() not in NOT_VENDORS
                and len(candidate) > 2
            ):
                vendor = candidate
                break

    category = None
    if "material" in content or "supply" in content:
        category = "materials"
    elif "equipment" in content or "tool" in content:
        category = "equipment"
    elif "service" in content or "labor" in content:
        category = "services"

    return {
        "amount": amount,
        "vendor": vendor,
        "category": category,
        "description": content[:200] + ("..." if len(content) > 200 else ""),
    }


def extract_billing_data(content: str) -> dict:
    invoice = INVOICE_NUMBER_RE.search(content)
    amount = DUE_AMOUNT_RE.search(content)
    due = DUE_DATE_RE.search(content)
    return {
        "invoice_number": invoice.group(1) if invoice else None,
        "amount": float(amount.group(1)) if amount else 0.0,
        "due_date": due.group(1) if due else None,
    }


def extract_lead_data(content: str) -> dict:
    name = NAME_RE.search(content)
    email = EMAIL_RE.search(content)
    phone = PHONE_RE.search(content)
    company = COMPANY_RE.search(content)

    service_type = None
    if "painting" in content or "paint" in content:
        service_type = "painting"
    elif "plumbing" in content:
        service_type = "plumbing"
    elif "electrical" in content:
        service_type = "electrical"
    elif "hvac" in content or "heating" in content:
        service_type = "hvac"

    return {
        "contact_name": name.group(1) if name else None,
        "company_name": company.group(1).strip() if company else None,
        "contact_email": email.group(0) if email else None,
        "contact_phone": phone.group(0) if phone else None,
        "service_type": service_type,
    }


def _has_lead_contact(data: Optional[dict]) -> bool:
    return bool(data and (data.get("contact_name") or data.get("contact_email") or data.get("company_name")))


def categorize_email(subject: str, body: str) -> dict:
    """Returns {category, confidence, reasoning, extracted_data}"""
    content = f"{subject or ''} {body or ''}".lower()

    junk_score = count_keywords(content, JUNK_KEYWORDS)
    if junk_score >= 2:
        return {
            "category": "junk",
            "confidence": min(0.9, 0.6 + junk_score * 0.1),
            "reasoning": f"Detected {junk_score} junk/spam keywords",
            "extracted_data": None,
        }

    if any(keyword in content for keyword in NON_BUSINESS_KEYWORDS):
        return {
            "category": "other",
            "confidence": 0.8,
            "reasoning": "Security or account notification, not business related",
            "extracted_data": None,
        }

    spending_score = count_keywords(content, SPENDING_KEYWORDS)
    billing_score = count_keywords(content, BILLING_KEYWORDS)
    lead_score = count_keywords(content, LEAD_KEYWORDS)

    category, confidence, extracted = "other", 0.4, None

    if spending_score >= 1:
        spending = extract_spending_data(content)
        if spending["amount"] > 0:
            category = "spending"
            confidence = min(0.85, 0.5 + spending_score * 0.15)
            extracted = {"spending": spending}

    if billing_score >= 1 and (extracted is None or confidence < 0.6):
        billing = extract_billing_data(content)
        if billing["amount"] > 0:
            category = "billing"
            confidence = min(0.85, 0.5 + billing_score * 0.15)
            extracted = {"billing": billing}

    if lead_score >= 1 and (extracted is None or confidence < 0.6):
        leads = extract_lead_data(content)
        if _has_lead_contact(leads):
            category = "leads"
            confidence = min(0.85, 0.5 + lead_score * 0.15)
            extracted = {"leads": leads}

    if extracted is None:
        if billing_score >= 1 and billing_score > spending_score and billing_score > lead_score:
            billing = extract_billing_data(content)
            if billing["amount"] >= 0.01:
                category = "billing"
                confidence = min(0.8, 0.4 + (billing_score - 1) * 0.1)
                extracted = {"billing": billing}
            else:
                category, confidence = "other", 0.5
        elif lead_score >= 1 and lead_score > spending_score and lead_score > billing_score:
            leads = extract_lead_data(content)
            if _has_lead_contact(leads):
                category = "leads"
                confidence = min(0.8, 0.4 + (lead_score - 1) * 0.1)
                extracted = {"leads": leads}
            else:
                category, confidence = "other", 0.5

    return {
        "category": category,
        "confidence": round(confidence, 2),
        "reasoning": (
            f"Keyword scores: spending={spending_score}, billing={billing_score}, leads={lead_score}"
        ),
        "extracted_data": extracted,
    }
