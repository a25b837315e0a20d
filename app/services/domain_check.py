import dns.asyncresolver
import dns.exception
from loguru import logger

from app.core.config import settings
from app.schemas.auth import extract_domain


async def _has_records(domain: str, record_type: str) -> bool:
    try:
        answer = await dns.asyncresolver.resolve(
            domain, record_type, lifetime=settings.DNS_TIMEOUT_SECONDS
        )
    except dns.exception.DNSException as e:
        logger.debug(f"{record_type} lookup for {domain} failed: {type(e).__name__}")
        return False
    return len(answer) > 0


async def validate_email_domain(email: str) -> bool:
    """
    True when the email's domain publishes MX records, or at least an A record.
    Lookup failures of any kind count as an unreachable domain.
    """
    domain = extract_domain(email)
    if not domain:
        return False

    try:
        if await _has_records(domain, "MX"):
            return True
        return await _has_records(domain, "A")
    except Exception as e:
        logger.error(f"Unexpected error while checking domain {domain}: {str(e)}")
        return False
