from iplay.certificates.service import REALMS, certificate_id, issue_certificates

__all__ = ["REALMS", "certificate_id", "issue_certificates"]
