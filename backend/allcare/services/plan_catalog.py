"""
Plan Catalog

Read-only access to membership plan descriptors kept under
``membershipPlans`` in the document store. Admin screens own the
catalog content; when nothing is stored the built-in plans are served.
"""

import logging
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from allcare.domain.plans import DEFAULT_PLANS, MEMBERSHIP_PLANS_COLLECTION, PlanDescriptor
from allcare.infrastructure.exceptions import NotFoundError
from allcare.infrastructure.store import IReadStore, join_path


logger = logging.getLogger(__name__)


class PlanCatalog:
    """Plan descriptors ordered by price."""

    def __init__(self, store: IReadStore):
        self._store = store

    async def list_plans(self) -> list[PlanDescriptor]:
        """
        Fetch all membership plans.

        Returns:
            Stored plans ordered by price, or the built-in plans if none are stored

        Raises:
            StoreError: the store could not be read
        """
        data = await self._store.get(MEMBERSHIP_PLANS_COLLECTION)
        if not data:
            return list(DEFAULT_PLANS)

        plans = []
        for key, raw in data.items():
            if not isinstance(raw, dict):
                continue
            try:
                plans.append(PlanDescriptor.model_validate({**raw, "id": key}))
            except PydanticValidationError as e:
                logger.warning(f"Skipping malformed membership plan {key}: {e}")

        if not plans:
            return list(DEFAULT_PLANS)

        return sorted(plans, key=lambda plan: (plan.price, plan.title))

    async def get_plan(self, plan_id: str) -> PlanDescriptor:
        """
        Fetch a single plan by id.

        Raises:
            NotFoundError: no plan has that id
        """
        plan = self._find(await self.list_plans(), plan_id)
        if plan is None:
            raise NotFoundError(
                f"Membership plan '{plan_id}' not found",
                operation="get",
                path=join_path(MEMBERSHIP_PLANS_COLLECTION, plan_id),
            )
        return plan

    @staticmethod
    def _find(plans: list[PlanDescriptor], plan_id: str) -> Optional[PlanDescriptor]:
        return next((plan for plan in plans if plan.id == plan_id), None)
