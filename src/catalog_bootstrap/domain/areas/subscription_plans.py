"""Subscription plans, keyed by identifier and re-read after creation."""

from __future__ import annotations

from typing import TYPE_CHECKING

from catalog_bootstrap.domain.reconcile import AreaReconciler
from catalog_bootstrap.domain.spec import SpecSubscriptionPlan

from .base import parse_records

if TYPE_CHECKING:
    from collections.abc import Sequence

    from catalog_bootstrap.adapters.graphql import GraphQLResponse
    from catalog_bootstrap.domain.context import BootstrapContext
    from catalog_bootstrap.domain.reconcile import UpdateSink

SUBSCRIPTION_PLANS_QUERY = """
query GET_INSTANCE_SUBSCRIPTION_PLANS($instanceId: ID!) {
  subscriptionPlan {
    getMany(instanceId: $instanceId) {
      identifier
      name
      meteredVariables {
        id
        identifier
        name
        unit
      }
      periods {
        id
        name
        initial {
          period
          unit
        }
        recurring {
          period
          unit
        }
      }
    }
  }
}
"""

CREATE_SUBSCRIPTION_PLAN_MUTATION = """
mutation CREATE_SUBSCRIPTION_PLAN($input: CreateSubscriptionPlanInput!) {
  subscriptionPlan {
    create(input: $input) {
      identifier
    }
  }
}
"""


async def get_existing_subscription_plans(
    context: BootstrapContext,
) -> list[SpecSubscriptionPlan]:
    response = await context.call_management(
        SUBSCRIPTION_PLANS_QUERY, {"instanceId": context.instance_id}
    )
    return parse_records(
        SpecSubscriptionPlan,
        response.select("subscriptionPlan", "getMany"),
        area="subscription plans",
    )


async def reconcile_subscription_plans(
    spec_plans: Sequence[SpecSubscriptionPlan] | None,
    context: BootstrapContext,
    on_update: UpdateSink,
) -> list[SpecSubscriptionPlan]:
    async def fetch_existing() -> list[SpecSubscriptionPlan]:
        return await get_existing_subscription_plans(context)

    async def create(plan: SpecSubscriptionPlan) -> GraphQLResponse:
        return await context.call_management(
            CREATE_SUBSCRIPTION_PLAN_MUTATION,
            {
                "input": {
                    "instanceId": context.instance_id,
                    "identifier": plan.identifier,
                    "name": plan.name,
                    "periods": [period.to_input() for period in plan.periods],
                    "meteredVariables": [
                        variable.to_input() for variable in plan.metered_variables
                    ],
                }
            },
        )

    reconciler = AreaReconciler[SpecSubscriptionPlan](
        label="subscription plan",
        fetch_existing=fetch_existing,
        create=create,
        identity_key=lambda plan: plan.identifier,
        describe=lambda plan: plan.name or plan.identifier,
        refetch=True,
    )
    return await reconciler.reconcile(spec_plans, on_update=on_update)
