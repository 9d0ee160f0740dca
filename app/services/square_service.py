"""
Square Service
OAuth token management and customer import into the client list
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

import httpx
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..config import SQUARE_APPLICATION_ID, SQUARE_APPLICATION_SECRET, SQUARE_ENVIRONMENT
from ..models import Client
from ..models_square import SquareIntegration
from ..shared.crypto import decrypt_token, encrypt_token

logger = logging.getLogger(__name__)

# Sandbox and production use different hosts
if SQUARE_ENVIRONMENT == "production":
    SQUARE_OAUTH_URL = "https://connect.squareup.com"
else:
    SQUARE_OAUTH_URL = "https://connect.squareupsandbox.com"
SQUARE_API_URL = f"{SQUARE_OAUTH_URL}/v2"
SQUARE_VERSION = "2024-12-18"
REFRESH_WINDOW = timedelta(minutes=5)


class SquareAPIError(Exception):
    pass


def square_headers(access_token: Optional[str] = None) -> dict:
    headers = {"Content-Type": "application/json", "Square-Version": SQUARE_VERSION}
    if access_token:
        headers["Authorization"] = f"Bearer {access_token}"
    return headers


def parse_expires_at(value: Optional[str]) -> Optional[datetime]:
    """Square returns RFC 3339 timestamps; stored naive UTC"""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as e:
        logger.warning(f"Failed to parse expires_at: {e}")
        return None
    if parsed.tzinfo:
        parsed = parsed.replace(tzinfo=None) - (parsed.utcoffset() or timedelta(0))
    return parsed


async def request_tokens(payload: dict) -> dict:
    """POST /oauth2/token for both code exchange and refresh"""
    async with httpx.AsyncClient(timeout=30.0) as client:
        response = await client.post(
            f"{SQUARE_OAUTH_URL}/oauth2/token",
            json={"client_id": SQUARE_APPLICATION_ID, "client_secret": SQUARE_APPLICATION_SECRET, **payload},
            headers=square_headers(),
        )
    if response.status_code != 200:
        logger.error(f"Square token request failed: {response.text}")
        raise SquareAPIError(response.text)
    return response.json()


async def get_valid_access_token(integration: SquareIntegration, db: Session) -> Optional[str]:
    """
    Decrypted access token, refreshed first when it expires within 5 minutes.
    Returns None when the token is expired and cannot be refreshed.
    """
    expires_at = integration.token_expires_at
    if expires_at and expires_at - datetime.utcnow() < REFRESH_WINDOW:
        if not integration.refresh_token:
            logger.warning(f"⚠️ Square token expired for account {integration.account_id} and no refresh token")
            return None
        try:
            tokens = await request_tokens(
                {"grant_type": "refresh_token", "refresh_token": decrypt_token(integration.refresh_token)}
            )
        except SquareAPIError:
            return None

        integration.access_token = encrypt_token(tokens["access_token"])
        if tokens.get("refresh_token"):
            integration.refresh_token = encrypt_token(tokens["refresh_token"])
        integration.token_expires_at = parse_expires_at(tokens.get("expires_at"))
        db.commit()
        logger.info(f"🔄 Square token refreshed for account {integration.account_id}")
        return tokens["access_token"]

    return decrypt_token(integration.access_token)


async def fetch_square_customers(access_token: str) -> list[dict]:
    """All customers, following the list cursor"""
    customers: list[dict] = []
    cursor = None
    async with httpx.AsyncClient(timeout=30.0) as client:
        while True:
            params = {"cursor": cursor} if cursor else {}
            response = await client.get(
                f"{SQUARE_API_URL}/customers", params=params, headers=square_headers(access_token)
            )
            if response.status_code != 200:
                logger.error(f"Square customer list failed: {response.status_code} {response.text}")
                raise SquareAPIError(f"Failed to fetch customers from Square ({response.status_code})")
            data = response.json()
            customers.extend(data.get("customers") or [])
            cursor = data.get("cursor")
            if not cursor:
                break
    logger.info(f"📥 Fetched {len(customers)} customers from Square")
    return customers


def map_square_customer(customer: dict) -> dict:
    address = customer.get("address") or {}
    given = (customer.get("given_name") or "").strip()
    family = (customer.get("family_name") or "").strip()
    company = customer.get("company_name") or None
    email = (customer.get("email_address") or "").strip().lower() or None
    name = " ".join(part for part in (given, family) if part) or company or email or "Square customer"

    street = ", ".join(p for p in (address.get("address_line_1"), address.get("address_line_2")) if p)
    return {
        "name": name,
        "company_name": company,
        "email": email,
        "phone": customer.get("phone_number") or None,
        "address": street or None,
        "city": address.get("locality") or None,
        "state": address.get("administrative_district_level_1") or None,
        "zip_code": address.get("postal_code") or None,
        "notes": customer.get("note") or None,
        "square_customer_id": customer.get("id"),
    }


def import_customers(db: Session, account_id: int, customers: list[dict]) -> dict:
    """Create clients for Square customers not already present (by email or Square id)"""
    existing_emails = {
        email
        for (email,) in db.query(func.lower(Client.email))
        .filter(Client.account_id == account_id, Client.email.isnot(None))
        .all()
    }
    existing_square_ids = {
        sid
        for (sid,) in db.query(Client.square_customer_id)
        .filter(Client.account_id == account_id, Client.square_customer_id.isnot(None))
        .all()
    }

    imported = skipped = 0
    for customer in customers:
        data = map_square_customer(customer)
        square_id = data["square_customer_id"]
        if (square_id and square_id in existing_square_ids) or (data["email"] and data["email"] in existing_emails):
            skipped += 1
            continue
        db.add(Client(account_id=account_id, source="square", status="active", **data))
        if data["email"]:
            existing_emails.add(data["email"])
        if square_id:
            existing_square_ids.add(square_id)
        imported += 1

    db.commit()
    logger.info(f"✅ Square import for account {account_id}: {imported} imported, {skipped} skipped")
    return {"imported": imported, "skipped": skipped, "total": len(customers)}
