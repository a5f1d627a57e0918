# login_risk/services/rules_service.py
"""
In-memory SecurityRules store.

Stands in for the external rules store: one current rule set, replaced
wholesale by the admin update path. Threshold ordering is not validated.
"""

import logging
import threading
from typing import Optional

from login_risk.schemas.risk_schema import SecurityRules

logger = logging.getLogger(__name__)


def default_rules_from_settings(settings) -> SecurityRules:
    return SecurityRules(
        block_threshold=settings.DEFAULT_BLOCK_THRESHOLD,
        challenge_threshold=settings.DEFAULT_CHALLENGE_THRESHOLD,
        alert_threshold=settings.DEFAULT_ALERT_THRESHOLD,
        allow_threshold=settings.DEFAULT_ALLOW_THRESHOLD,
    )


class SecurityRulesStore:

    def __init__(self, rules: Optional[SecurityRules] = None):
        self._rules = rules or SecurityRules()
        self._lock = threading.Lock()

    def get_rules(self) -> SecurityRules:
        return self._rules

    def update_rules(self, rules: SecurityRules, updated_by: Optional[str] = None) -> SecurityRules:
        with self._lock:
            self._rules = rules
        if not (rules.block_threshold >= rules.challenge_threshold >= rules.alert_threshold):
            logger.warning("Security rules thresholds are not ordered block >= challenge >= alert: %s", rules)
        logger.info("Security rules updated by %s", updated_by or "unknown")
        return rules
