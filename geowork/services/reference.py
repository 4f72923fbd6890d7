"""
Policy & reference data accessors.
Read-through lookups scoped to one orchestrator pass; defaults apply where
company or employee settings are absent.
"""
from typing import Dict, Optional

import structlog

from ..errors import StoreError
from ..schemas.reference import Company, CompanyPolicy, Employee, JobSite, LocationFix, NotificationConsent
from ..store.provider import SessionStore

logger = structlog.get_logger(__name__)

_MISSING = object()


class ReferenceData:
    """Memoises reference lookups for the lifetime of one run."""

    def __init__(self, store: SessionStore):
        self.store = store
        self._job_sites: Dict[str, Optional[JobSite]] = {}
        self._companies: Dict[str, Optional[Company]] = {}
        self._policies: Dict[str, CompanyPolicy] = {}

    def employee(self, employee_id: str) -> Optional[Employee]:
        return self.store.get_employee(employee_id)

    def company(self, company_id: str) -> Optional[Company]:
        cached = self._companies.get(company_id, _MISSING)
        if cached is _MISSING:
            cached = self._companies[company_id] = self.store.get_company(company_id)
        return cached

    def job_site(self, job_site_id: str) -> Optional[JobSite]:
        cached = self._job_sites.get(job_site_id, _MISSING)
        if cached is _MISSING:
            cached = self._job_sites[job_site_id] = self.store.get_job_site(job_site_id)
        return cached

    def company_policy(self, company_id: str) -> CompanyPolicy:
        if company_id not in self._policies:
            policy = self.store.get_company_policy(company_id)
            if policy is None:
                logger.warning("company_settings_missing", company_id=company_id, using="defaults")
                policy = CompanyPolicy()
            self._policies[company_id] = policy
        return self._policies[company_id]

    def notification_consent(self, employee_id: str) -> NotificationConsent:
        consent = self.store.get_notification_consent(employee_id)
        return consent if consent is not None else NotificationConsent()

    def latest_location(self, employee_id: str) -> Optional[LocationFix]:
        """
        Latest location fix for an employee, or None.

        A failed lookup is treated like an absent fix: presence stays as it is
        and the next pass tries again.
        """
        try:
            return self.store.latest_location(employee_id)
        except StoreError as e:
            logger.warning("location_unavailable", employee_id=employee_id, error=str(e))
            return None
