from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from .types import Direction, Scene

logger = logging.getLogger(__name__)

DEFAULT_SCENE_ID = "__default__"
DEFAULT_SCENE_DIRECTION: Direction = "LR"


@dataclass(slots=True)
class ScenePartition:
    scene_id: str
    direction: Direction
    member_ids: list[str]
    node_spacing: float | None = None
    rank_spacing: float | None = None


def partition_scenes(
    scenes: Sequence[Scene],
    participant_ids: Iterable[str],
    default_direction: Direction = DEFAULT_SCENE_DIRECTION,
) -> list[ScenePartition]:
    """Assign every participant id to exactly one scene.

    Declared scenes are processed in order and keep the members that exist.
    A member already claimed by an earlier scene stays there (first claim
    wins). Whatever is left lands in one implicit default scene, so with no
    declared scenes the whole graph is a single partition.

    *participant_ids* must be the full declared set, not the revealed subset.
    """
    all_ids = list(dict.fromkeys(participant_ids))
    known = set(all_ids)
    claimed: set[str] = set()
    partitions: list[ScenePartition] = []

    for scene in scenes:
        members: list[str] = []
        for member_id in scene.members:
            if member_id not in known:
                continue
            if member_id in claimed:
                logger.warning(
                    "Participant %r is already in an earlier scene, ignoring it in scene %r",
                    member_id,
                    scene.id,
                )
                continue
            if member_id in members:
                continue
            members.append(member_id)

        if not members:
            logger.debug("Scene %r has no known members, skipping", scene.id)
            continue

        claimed.update(members)
        partitions.append(ScenePartition(
            scene_id=scene.id,
            direction=scene.direction or default_direction,
            member_ids=members,
            node_spacing=scene.node_spacing,
            rank_spacing=scene.rank_spacing,
        ))

    unassigned = [pid for pid in all_ids if pid not in claimed]
    if unassigned:
        partitions.append(ScenePartition(
            scene_id=DEFAULT_SCENE_ID,
            direction=default_direction,
            member_ids=unassigned,
        ))

    logger.debug(
        "Partitioned %d participants into %d scenes", len(all_ids), len(partitions)
    )
    return partitions


def scene_membership(partitions: Iterable[ScenePartition]) -> dict[str, str]:
    """Participant id -> scene id lookup."""
    return {
        member_id: partition.scene_id
        for partition in partitions
        for member_id in partition.member_ids
    }
