# cosmosoperator

Building blocks for managing Cosmos SDK / CometBFT full nodes on Kubernetes.
The package has no third-party dependencies.

## What is in it

- `cosmosoperator.v1`: the `CosmosFullNode` resource (`cosmos.strange.love/v1`)
  and its parts: `FullNodeSpec`, `ChainSpec`, `CometConfig`, `SDKAppConfig`,
  `Pruning`, `ChainVersion`, `FullNodeStatus`, `SyncInfoPodStatus` and the enums
  `FullNodeType`, `FullNodePhase` and `PruningStrategy`. `GroupVersion.api_version()`
  gives the `apiVersion` string.
- `cosmosoperator.v1_pod`: pod, PVC, service and per-instance settings of a full
  node (`PodSpec`, `PersistentVolumeClaimSpec`, `ServiceSpec`,
  `InstanceOverridesSpec` and friends).
- `cosmosoperator.self_healing`: `SelfHealSpec` (PVC auto-scaling and height
  drift mitigation) and `SelfHealingStatus`.
- `cosmosoperator.scheduled_volume_snapshot`: the `ScheduledVolumeSnapshot`
  resource (`cosmos.strange.love/v1alpha1`) and its `SnapshotPhase` enum.
- `cosmosoperator.stateful_job`: the `StatefulJob` resource
  (`cosmos.strange.love/v1alpha1`). Its `interval` is read from and written as a
  duration string such as `"24h0m0s"`.
- `cosmosoperator.comet_client`: `CometClient`, which reads the `/status` RPC
  endpoint. It accepts both the JSON-RPC response with a `result` object and the
  bare response that carries `node_info`, `sync_info` and `validator_info` at the
  top level. Failures raise `CometClientError`; a non-200 reply gives an error
  holding the status code and reason. `CometStatus.latest_block_height()`
  returns 0 when the reported height is not a plain non-negative number.
- `cosmosoperator.status_collection`: `Pod`, `StatusItem` and
  `StatusCollection`. The collection can be sorted by the pods'
  `app.kubernetes.io/ordinal` annotation. It can also upsert and intersect pods
  by UID and pick out the items that are synced with the chain tip.
- `cosmosoperator.status_collector`: `StatusCollector`, which queries every
  pod's RPC port (26657) in parallel and returns the results sorted by ordinal.
  A pod without an IP is not queried.
- `cosmosoperator.cache_controller`: `CacheController`, which polls a full
  node's pods in a background thread. The default interval is 5 seconds.
  `collect()` returns the cached status of the node's current pods.
  `synced_pods()` returns the pods that are in sync and have been Ready for more
  than 5 seconds. The controller is also a context manager, and `close()` stops
  all polling. It is built from a reader that you supply: `get(key)` raises
  `NotFoundError` when the resource is gone, and `list_pods(namespace,
  matching_fields)` lists the pods.
- `cosmosoperator.logger`: `new_logger(level, log_format, stream)`. It returns a
  `logging.Logger` that writes tab-separated console lines, or one JSON object
  per line when `log_format` is `"json"`. Timestamps are in UTC. An unknown
  level falls back to info. Structured fields go in
  `extra={"fields": {...}}`.

Every resource model has `to_dict()` and `from_dict()`. The top-level resources
also have `deep_copy()`.

## Install

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Example

```python
from cosmosoperator.comet_client import CometClient
from cosmosoperator.status_collector import StatusCollector
from cosmosoperator.status_collection import Pod

client = CometClient()
status = client.status("http://localhost:26657", timeout=5.0)
print(status.latest_block_height())

collector = StatusCollector(client, timeout=5.0)
collection = collector.collect([Pod(name="node-0", pod_ip="10.0.0.1")])
for pod in collection.synced_pods():
    print(pod.name, "is in sync")
```

Resources round-trip through plain dictionaries shaped like their API documents:

```python
from cosmosoperator.v1 import CosmosFullNode

node = CosmosFullNode.from_dict(document)
duplicate = node.deep_copy()
assert duplicate.to_dict() == node.to_dict()
```

## What it does not do

This is a library, not a running operator. It has no command-line program and
no health-check HTTP server. It does not talk to a Kubernetes API server: you
provide the reader that the cache controller uses. It does not create, update or
delete pods, PVCs, services, config maps or volume snapshots. It does not read a
chain's database to find the block height.