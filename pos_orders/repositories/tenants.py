"""
Tenant and tenant feature repositories
"""

from typing import List, Optional
import uuid

from sqlmodel import Session, select

from pos_orders.models.tenant import Tenant, TenantFeature


class TenantRepository:
    def __init__(self, session: Session):
        self.session = session

    def find_by_id(self, tenant_id: uuid.UUID) -> Optional[Tenant]:
        return self.session.get(Tenant, tenant_id)


class TenantFeatureRepository:
    def __init__(self, session: Session):
        self.session = session

    def find_by_tenant(self, tenant_id: uuid.UUID) -> List[TenantFeature]:
        statement = select(TenantFeature).where(TenantFeature.tenant_id == tenant_id)
        return list(self.session.exec(statement).all())

    def find_by_tenant_and_feature(
        self,
        tenant_id: uuid.UUID,
        feature_code: str
    ) -> Optional[TenantFeature]:
        statement = select(TenantFeature).where(
            TenantFeature.tenant_id == tenant_id,
            TenantFeature.feature_code == feature_code
        )
        return self.session.exec(statement).first()
