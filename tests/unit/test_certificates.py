"""Unit tests for certificate issuance."""

from datetime import date, datetime, timezone

import pytest

from iplay import collection_names as cn
from iplay.certificates import REALMS, issue_certificates
from iplay.certificates.pdf import render_certificate_pdf
from iplay.certificates.service import certificate_number, certificate_path, completed_realms
from iplay.storage import InMemoryBucket
from iplay.store import InMemoryDocumentStore

NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)
VERIFY = "https://iplay.app/verify"


class TestHelpers:
    def test_certificate_number(self):
        assert certificate_number("realm_patent", NOW) == "IPLAY-REALM_PATENT-1767225600000"

    def test_certificate_path(self):
        assert certificate_path("u1", "realm_gi") == "certificates/u1/u1_realm_gi.pdf"

    def test_six_realms(self):
        assert len(REALMS) == 6
        assert len({r.id for r in REALMS}) == 6

    def test_completed_realms_ignores_malformed_entries(self):
        summary = {
            "realm_copyright": {"completed": True},
            "realm_patent": {"completed": False},
            "realm_trademark": "done",
            "realm_unknown": {"completed": True},
        }
        assert [r.id for r in completed_realms(summary)] == ["realm_copyright"]


class TestRenderPdf:
    def test_produces_a_pdf(self):
        pdf = render_certificate_pdf(
            display_name="Asha",
            realm_name="Patent",
            certificate_number="IPLAY-REALM_PATENT-1",
            issued_on=date(2026, 1, 1),
            verify_url=f"{VERIFY}/IPLAY-REALM_PATENT-1",
        )
        assert pdf.startswith(b"%PDF")
        assert len(pdf) > 1000


class TestIssueCertificates:
    @pytest.mark.asyncio
    async def test_issues_one_per_completed_realm(self):
        store = InMemoryDocumentStore()
        bucket = InMemoryBucket("iplay-test")
        user = {
            "displayName": "Asha",
            "progressSummary": {
                "realm_patent": {"completed": True},
                "realm_gi": {"completed": True},
                "realm_copyright": {"completed": False},
            },
        }

        issued = await issue_certificates(store, bucket, "u1", user, verify_base_url=VERIFY, now=NOW)

        assert issued == ["u1_realm_patent", "u1_realm_gi"]
        assert bucket.paths() == [
            "certificates/u1/u1_realm_gi.pdf",
            "certificates/u1/u1_realm_patent.pdf",
        ]
        cert = store.dump(cn.CERTIFICATES)["u1_realm_patent"]
        assert cert == {
            "id": "u1_realm_patent",
            "userId": "u1",
            "certificateType": "realm",
            "realmId": "realm_patent",
            "realmName": "Patent",
            "certificateUrl": "gs://iplay-test/certificates/u1/u1_realm_patent.pdf",
            "certificateNumber": "IPLAY-REALM_PATENT-1767225600000",
            "issuedAt": NOW,
        }
        stored = await bucket.read("certificates/u1/u1_realm_patent.pdf")
        assert stored.content_type == "application/pdf"

    @pytest.mark.asyncio
    async def test_existing_certificate_is_not_reissued(self):
        store = InMemoryDocumentStore()
        bucket = InMemoryBucket()
        store.seed(cn.CERTIFICATES, "legacy", {"userId": "u1", "realmId": "realm_patent"})
        user = {"progressSummary": {"realm_patent": {"completed": True}}}

        issued = await issue_certificates(store, bucket, "u1", user, verify_base_url=VERIFY, now=NOW)

        assert issued == []
        assert bucket.paths() == []

    @pytest.mark.asyncio
    async def test_second_run_is_idempotent(self):
        store = InMemoryDocumentStore()
        bucket = InMemoryBucket()
        user = {"progressSummary": {"realm_secrets": {"completed": True}}}

        await issue_certificates(store, bucket, "u1", user, verify_base_url=VERIFY, now=NOW)
        again = await issue_certificates(store, bucket, "u1", user, verify_base_url=VERIFY, now=NOW)

        assert again == []
        assert list(store.dump(cn.CERTIFICATES)) == ["u1_realm_secrets"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("user", [{}, {"progressSummary": None}, {"progressSummary": []}])
    async def test_no_progress_summary_issues_nothing(self, user):
        store = InMemoryDocumentStore()
        bucket = InMemoryBucket()
        assert await issue_certificates(store, bucket, "u1", user, verify_base_url=VERIFY) == []
        assert store.dump(cn.CERTIFICATES) == {}
