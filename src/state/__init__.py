"""Published cluster state, selection intents and interaction-state merging."""

from .merger import (
    InteractionState,
    InteractionStateMerger,
    MergeOutcome,
    apply_interaction_states,
)
from .selection import (
    SelectionIntent,
    ShowClusterPicker,
    ShowSinglePreview,
    resolve_pick,
    select_cluster,
)
from .store import FLAGS_UPDATED, SNAPSHOT_REPLACED, ClusterStore

__all__ = [
    "InteractionState",
    "InteractionStateMerger",
    "MergeOutcome",
    "apply_interaction_states",
    "SelectionIntent",
    "ShowClusterPicker",
    "ShowSinglePreview",
    "resolve_pick",
    "select_cluster",
    "FLAGS_UPDATED",
    "SNAPSHOT_REPLACED",
    "ClusterStore",
]
