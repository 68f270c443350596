"""Certificate issuance for completed realms.

Rules:
- One certificate per (user, realm); the document id is ``{uid}_{realmId}``
- Existing certificates are detected by query before anything is rendered
- The PDF is uploaded first, then the certificate document is written
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from iplay import collection_names as cn
from iplay.certificates.pdf import render_certificate_pdf
from iplay.storage import Bucket
from iplay.store import DocumentStore, where

logger = logging.getLogger(__name__)

DEFAULT_DISPLAY_NAME = "Student"
PDF_CONTENT_TYPE = "application/pdf"


@dataclass(frozen=True)
class Realm:
    id: str
    name: str


REALMS: tuple[Realm, ...] = (
    Realm("realm_copyright", "Copyright"),
    Realm("realm_trademark", "Trademark"),
    Realm("realm_patent", "Patent"),
    Realm("realm_design", "Industrial Design"),
    Realm("realm_gi", "Geographical Indication"),
    Realm("realm_secrets", "Trade Secrets"),
)


def certificate_id(user_id: str, realm_id: str) -> str:
    return f"{user_id}_{realm_id}"


def certificate_path(user_id: str, realm_id: str) -> str:
    return f"certificates/{user_id}/{certificate_id(user_id, realm_id)}.pdf"


def certificate_number(realm_id: str, issued_at: datetime) -> str:
    """Unique per (realm, issuance instant), e.g. 'IPLAY-REALM_PATENT-1767225600000'."""
    return f"IPLAY-{realm_id.upper()}-{int(issued_at.timestamp() * 1000)}"


def completed_realms(progress_summary: dict[str, Any]) -> list[Realm]:
    completed = []
    for realm in REALMS:
        progress = progress_summary.get(realm.id)
        if isinstance(progress, dict) and progress.get("completed"):
            completed.append(realm)
    return completed


async def has_certificate(store: DocumentStore, user_id: str, realm_id: str) -> bool:
    existing = await store.query(
        cn.CERTIFICATES,
        where("userId", "==", user_id),
        where("realmId", "==", realm_id),
        limit=1,
    )
    return bool(existing)


async def issue_certificates(
    store: DocumentStore,
    bucket: Bucket,
    user_id: str,
    user_data: dict[str, Any],
    *,
    verify_base_url: str,
    now: datetime | None = None,
) -> list[str]:
    """Issue certificates for every completed realm not yet certified.

    Returns the ids of newly issued certificates.
    """
    summary = user_data.get("progressSummary")
    if not isinstance(summary, dict):
        return []

    issued: list[str] = []
    for realm in completed_realms(summary):
        if await has_certificate(store, user_id, realm.id):
            continue

        issued_at = now or datetime.now(timezone.utc)
        number = certificate_number(realm.id, issued_at)
        verify_url = f"{verify_base_url.rstrip('/')}/{number}"
        pdf_bytes = render_certificate_pdf(
            display_name=user_data.get("displayName") or DEFAULT_DISPLAY_NAME,
            realm_name=realm.name,
            certificate_number=number,
            issued_on=issued_at.date(),
            verify_url=verify_url,
        )
        url = await bucket.save(certificate_path(user_id, realm.id), pdf_bytes, PDF_CONTENT_TYPE)

        cert_id = certificate_id(user_id, realm.id)
        await store.set(cn.CERTIFICATES, cert_id, {
            "id": cert_id,
            "userId": user_id,
            "certificateType": "realm",
            "realmId": realm.id,
            "realmName": realm.name,
            "certificateUrl": url,
            "certificateNumber": number,
            "issuedAt": issued_at,
        })
        issued.append(cert_id)
        logger.info("Certificate generated: %s (user=%s)", number, user_id)

    return issued
