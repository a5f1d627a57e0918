from fastapi import APIRouter, Depends

from login_risk.api.deps import get_rules_store
from login_risk.core.admin_security import require_admin
from login_risk.schemas.risk_schema import SecurityRules
from login_risk.services.rules_service import SecurityRulesStore

router = APIRouter(prefix="/rules", tags=["Security Rules"])


@router.get("", response_model=SecurityRules)
def get_rules(rules_store: SecurityRulesStore = Depends(get_rules_store)):
    return rules_store.get_rules()


@router.put("", response_model=SecurityRules)
def update_rules(
    data: SecurityRules,
    rules_store: SecurityRulesStore = Depends(get_rules_store),
    admin: dict = Depends(require_admin),
):
    return rules_store.update_rules(data, updated_by=admin["id"])
