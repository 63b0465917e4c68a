"""
Tenant checks and feature flag queries
"""

from datetime import datetime
from typing import List, NamedTuple, Optional
import uuid

import structlog

from pos_orders.core.database import SessionFactory
from pos_orders.core.errors import TenantInactiveError, TenantNotFoundError, operation_context
from pos_orders.core.providers import Clock, utcnow
from pos_orders.models.tenant import Tenant
from pos_orders.repositories.unit_of_work import UnitOfWork, unit_of_work

logger = structlog.get_logger(__name__)


def require_active_tenant(uow: UnitOfWork, tenant_id: uuid.UUID) -> Tenant:
    """Load the tenant or raise; used by every order operation"""
    tenant = uow.tenants.find_by_id(tenant_id)
    if tenant is None:
        raise TenantNotFoundError("Tenant not found", tenant_id=tenant_id)
    if not tenant.is_active:
        logger.warning("Rejected request for inactive tenant", tenant_id=str(tenant_id))
        raise TenantInactiveError("Tenant is not active", tenant_id=tenant_id)
    return tenant


class FeatureCheck(NamedTuple):
    enabled: bool
    feature_code: str
    reason: str
    expires_at: Optional[datetime] = None


class TenantFeatureService:
    """Answers which features a tenant may use right now"""

    def __init__(self, session_factory: SessionFactory, clock: Clock = utcnow):
        self.session_factory = session_factory
        self.clock = clock

    def get_active_features(self, tenant_id: uuid.UUID) -> List[str]:
        """Sorted distinct codes of features that are active and not expired"""
        with operation_context("get active features", tenant_id=tenant_id):
            with unit_of_work(self.session_factory) as uow:
                require_active_tenant(uow, tenant_id)
                features = uow.tenant_features.find_by_tenant(tenant_id)
            now = self.clock()
            return sorted({f.feature_code for f in features if f.is_currently_active(now)})

    def check_feature_access(self, tenant_id: uuid.UUID, feature_code: str) -> FeatureCheck:
        with operation_context("check feature access", tenant_id=tenant_id, feature_code=feature_code):
            with unit_of_work(self.session_factory) as uow:
                require_active_tenant(uow, tenant_id)
                feature = uow.tenant_features.find_by_tenant_and_feature(tenant_id, feature_code)

            if feature is None:
                return FeatureCheck(False, feature_code, "Feature not activated for this tenant")
            if not feature.is_active:
                return FeatureCheck(False, feature_code, "Feature is deactivated", feature.expires_at)
            if feature.is_expired(self.clock()):
                return FeatureCheck(False, feature_code, "Feature has expired", feature.expires_at)
            return FeatureCheck(True, feature_code, "Feature is active and accessible", feature.expires_at)
