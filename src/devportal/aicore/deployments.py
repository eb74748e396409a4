"""
Deployment Aggregator - fan-out listing across AI Core instances
=================================================================

Each instance is listed in its own task under a shared concurrency
bound. A failing instance (token, transport, status or decode error) is
logged and skipped; it never aborts the aggregate. Results are joined
back in input order.
"""

import asyncio
from collections.abc import Sequence

from devportal.core.structured_logger import get_logger
from devportal.observability.metrics import MetricsCollector, get_metrics

from .client import AICoreClient
from .models import (
    AggregatedDeployments,
    Deployment,
    DeploymentList,
    DeploymentLocation,
    TeamDeployments,
)

logger = get_logger("DeploymentAggregator")

DEPLOYMENTS_PATH = "/v2/lm/deployments"


class DeploymentAggregator:
    """Lists deployments of many independently credentialed instances."""

    def __init__(
        self,
        client: AICoreClient,
        max_concurrency: int = 8,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self.client = client
        self._max_concurrency = max(1, max_concurrency)
        self._metrics = metrics or get_metrics()

    async def list_team(self, team: str) -> list[Deployment]:
        """List one instance's deployments; errors propagate."""
        listing = await self.client.get_json(
            team,
            self.client.api_url(team, DEPLOYMENTS_PATH),
            operation="list_deployments",
            response_model=DeploymentList,
        )
        return listing.resources

    async def _list_or_skip(self, team: str, semaphore: asyncio.Semaphore) -> TeamDeployments | None:
        async with semaphore:
            try:
                deployments = await self.list_team(team)
            except Exception as e:
                self._metrics.record_instance_skipped(team)
                logger.warning(
                    "Skipping instance during deployment aggregation",
                    team=team,
                    reason=str(e),
                )
                return None
        return TeamDeployments(team=team, deployments=deployments)

    async def list(self, instances: Sequence[str]) -> AggregatedDeployments:
        """
        Aggregate deployments over ``instances``.

        Count is the sum over the instances that answered. An empty
        instance list yields an empty result, not an error.
        """
        if not instances:
            return AggregatedDeployments()

        semaphore = asyncio.Semaphore(self._max_concurrency)
        results = await asyncio.gather(*(self._list_or_skip(team, semaphore) for team in instances))

        per_instance = [r for r in results if r is not None]
        count = sum(len(r.deployments) for r in per_instance)
        logger.info(
            "Aggregated deployments",
            instances=len(instances),
            answered=len(per_instance),
            count=count,
        )
        return AggregatedDeployments(count=count, deployments=per_instance)

    async def find_deployment(self, instances: Sequence[str], deployment_id: str) -> DeploymentLocation | None:
        """Locate a deployment in the listing of the given instances."""
        aggregated = await self.list(instances)
        for entry in aggregated.deployments:
            for deployment in entry.deployments:
                if deployment.id == deployment_id:
                    return DeploymentLocation(team=entry.team, deployment=deployment)
        return None
