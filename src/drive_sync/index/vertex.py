"""Vertex AI Vector Search implementation of the vector-index abstraction.

Writes go through ``IndexServiceClient.upsert_datapoints`` /
``remove_datapoints`` on a *streaming-update* index; both overwrite by
``datapoint_id``.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from drive_sync.index.base import VectorIndex
from drive_sync.models import IndexRecord

logger = logging.getLogger(__name__)


def index_resource_name(project: str, region: str, index_id: str) -> str:
    if index_id.startswith("projects/"):
        return index_id
    return f"projects/{project}/locations/{region}/indexes/{index_id}"


class VertexAIIndex(VectorIndex):
    """Vertex AI Vector Search index.

    Parameters
    ----------
    project / region / index_id:
        Locate the index; *index_id* may also be a full resource name.
    dimension:
        The index's configured dimension, checked by the writer.
    client:
        Pre-built ``IndexServiceClient``.  When *None*, one is created for
        the regional endpoint.
    """

    def __init__(
        self,
        project: str,
        region: str,
        index_id: str,
        *,
        dimension: int | None = None,
        client: Any | None = None,
    ) -> None:
        if not index_id:
            raise ValueError("index_id cannot be empty")
        resource = index_resource_name(project, region, index_id)
        super().__init__(resource, dimension)
        if client is None:
            from google.cloud import aiplatform_v1

            client = aiplatform_v1.IndexServiceClient(
                client_options={"api_endpoint": f"{region}-aiplatform.googleapis.com"}
            )
            logger.info("Vertex AI Vector Search client initialised for %s", resource)
        self._client = client

    def upsert(self, records: Sequence[IndexRecord]) -> None:
        if not records:
            return
        self._client.upsert_datapoints(
            request={
                "index": self.name,
                "datapoints": [
                    {"datapoint_id": r.datapoint_id, "feature_vector": r.feature_vector}
                    for r in records
                ],
            }
        )

    def delete(self, ids: Sequence[str]) -> None:
        if ids:
            self._client.remove_datapoints(
                request={"index": self.name, "datapoint_ids": list(ids)}
            )
