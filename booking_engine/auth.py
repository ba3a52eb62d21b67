import logging

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .database import get_db
from .domain.scheduling.repository import SchedulingRepository
from .models import Tenant
from .security_utils import API_KEY_PREFIX, constant_time_compare, hash_api_key, mask_sensitive_data

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


async def get_current_tenant(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> Tenant:
    """Resolve the tenant from a Bearer API key"""

    if not credentials or not credentials.credentials:
        logger.warning("⚠️ No credentials provided")
        raise HTTPException(
            status_code=401,
            detail="Not authenticated. Please provide a tenant API key as a Bearer token.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    api_key = credentials.credentials
    if not api_key.startswith(API_KEY_PREFIX):
        logger.warning(f"⚠️ Malformed API key received: {mask_sensitive_data(api_key)}")
        raise HTTPException(status_code=401, detail="Invalid API key")

    key_hash = hash_api_key(api_key)
    tenant = SchedulingRepository.get_tenant_by_api_key_hash(db, key_hash)
    if not tenant or not constant_time_compare(tenant.api_key_hash, key_hash):
        logger.warning(f"⚠️ Unknown API key: {mask_sensitive_data(api_key)}")
        raise HTTPException(status_code=401, detail="Invalid API key")

    logger.debug(f"🔐 Authenticated tenant {tenant.id}")
    return tenant
