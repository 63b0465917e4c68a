"""
Tenant feature API endpoints
"""

from fastapi import APIRouter, Depends
import uuid

from pos_orders.api.schemas import ActiveFeaturesResponse, FeatureCheckRequest, FeatureCheckResponse
from pos_orders.core.dependencies import get_tenant_feature_service, get_tenant_id
from pos_orders.services.tenants import TenantFeatureService

router = APIRouter()


@router.get("/features", response_model=ActiveFeaturesResponse)
def get_active_features(
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    service: TenantFeatureService = Depends(get_tenant_feature_service)
):
    """Codes of the features the tenant can use right now"""
    features = service.get_active_features(tenant_id)
    return ActiveFeaturesResponse(features=features, total=len(features))


@router.post("/features/check", response_model=FeatureCheckResponse)
def check_feature_access(
    request: FeatureCheckRequest,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    service: TenantFeatureService = Depends(get_tenant_feature_service)
):
    """Check whether the tenant may use one feature"""
    return FeatureCheckResponse(**service.check_feature_access(tenant_id, request.feature_code)._asdict())
