"""
Tenant model - Multi-tenancy foundation
"""

from sqlmodel import Field, SQLModel
from sqlalchemy import UniqueConstraint
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
import uuid

from pos_orders.core.providers import utcnow


class Tenant(SQLModel, table=True):
    """Tenant model for multi-tenant architecture"""

    __tablename__ = "tenants"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    name: str = Field(index=True)
    slug: str = Field(unique=True, index=True, description="Unique tenant identifier")

    # Pricing configuration (falls back to application defaults when unset)
    currency: Optional[str] = Field(default=None, max_length=3, description="ISO currency code")
    tax_rate: Optional[Decimal] = Field(
        default=None,
        max_digits=5,
        decimal_places=4,
        description="Default tax rate for new orders, e.g. 0.1000"
    )
    service_charge_rate: Optional[Decimal] = Field(
        default=None,
        max_digits=5,
        decimal_places=4,
        description="Default service charge rate for new orders"
    )

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: Optional[datetime] = None
    is_active: bool = Field(default=True, index=True)


class FeatureSource(str, Enum):
    """How a tenant obtained a feature"""
    PLAN_DEFAULT = "plan_default"
    PURCHASE = "purchase"
    MANUAL_GRANT = "manual_grant"
    TRIAL = "trial"


class TenantFeature(SQLModel, table=True):
    """Feature flag granted to a tenant"""

    __tablename__ = "tenant_features"
    __table_args__ = (
        UniqueConstraint("tenant_id", "feature_code", name="uq_tenant_feature_code"),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    tenant_id: uuid.UUID = Field(
        foreign_key="tenants.id",
        index=True,
        description="Tenant ID for multi-tenant isolation"
    )
    feature_code: str = Field(max_length=100, index=True)
    source: FeatureSource = Field(default=FeatureSource.PLAN_DEFAULT)
    is_active: bool = Field(default=True)
    activated_at: datetime = Field(default_factory=utcnow)
    expires_at: Optional[datetime] = Field(
        default=None,
        nullable=True,
        description="When the grant lapses; never when empty"
    )

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at < now

    def is_currently_active(self, now: datetime) -> bool:
        """Active flag set and not past its expiry"""
        return self.is_active and not self.is_expired(now)
