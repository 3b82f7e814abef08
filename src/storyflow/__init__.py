"""storyflow — progressive multi-scene layout for step-by-step architecture stories."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .types import (
    Edge,
    LayoutOptions,
    Participant,
    Scene,
    Step,
    Story,
    StoryLayout,
    Zone,
)
from .engine import GrandalfLayoutEngine, LayoutEngine, LayoutError
from .layout import layout_story
from .steps import project_steps
from .connectors import select_handles
from .story import story_from_dict

__all__ = [
    "layout",
    "layout_story",
    "project_steps",
    "select_handles",
    "story_from_dict",
    "GrandalfLayoutEngine",
    "LayoutEngine",
    "LayoutError",
    "LayoutOptions",
    "Story",
    "StoryLayout",
    "Participant",
    "Edge",
    "Step",
    "Scene",
    "Zone",
]


def layout(
    story: Story | Mapping[str, Any],
    step_index: int = 0,
    options: LayoutOptions | None = None,
) -> StoryLayout:
    """Lay out a story (typed or as a mapping) as of the given step."""
    if not isinstance(story, Story):
        story = story_from_dict(story)
    return layout_story(story, step_index, options)
