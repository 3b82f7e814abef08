from __future__ import annotations

import math

# ============================================================================
# Text metrics — average glyph widths (px) used to estimate node widths.
# ============================================================================

CHAR_WIDTHS = {
    # ~14px semibold participant name
    "name": 9.5,
    # ~12px regular type/technology line
    "detail": 7.0,
    # ~13px label inside non-rectangular shapes
    "shape": 8.0,
    # ~11px edge label
    "edge_label": 6.5,
}

# Fixed allowances (icon, version badge, padding) added to measured text
TEXT_ALLOWANCE = {
    "service_name": 108,
    "queue_name": 44,
    "detail": 24,
    "shape": 32,
    "edge_label": 28,
}

DETAIL_SEPARATOR = " • "

# Width clamp ranges per participant category
WIDTH_RANGES = {
    "service": (200, 360),
    "shape": (140, 280),
    "queue": (160, 280),
}

# ============================================================================
# Base dimensions per semantic type
# ============================================================================

NODE_DIMENSIONS: dict[str, tuple[float, float]] = {
    # generic service rectangle and queue
    "service": (200, 68),
    "queue": (160, 56),
    # distinct visual shapes
    "database": (160, 100),
    "event-bus": (180, 90),
    "gateway": (120, 120),
    "external": (180, 90),
    "worker": (180, 80),
    "event-processor": (220, 90),
    "workflow": (180, 70),
    "cache": (120, 120),
    "client": (180, 80),
    "firewall": (140, 140),
    "load-balancer": (180, 80),
    "scheduler": (120, 120),
    "storage": (200, 80),
    "function": (180, 80),
    "monitor": (180, 80),
    "human-task": (180, 80),
    "event-stream": (420, 72),
    # domain-level shapes
    "entity": (160, 100),
    "aggregate": (180, 90),
    "value-object": (160, 80),
    "domain-event": (180, 96),
    "policy": (140, 120),
    "read-model": (180, 80),
    "saga": (200, 80),
    "repository": (160, 100),
    "bounded-context": (220, 100),
    "actor": (160, 80),
    # state diagrams
    "state": (192, 56),
    "initial": (112, 32),
    "terminal": (112, 32),
    "choice": (56, 76),
}

# Types drawn as a distinct shape (width measured, height follows aspect ratio)
SHAPE_TYPES = {
    "database", "event-bus", "gateway", "external", "worker", "workflow",
    "cache", "client", "firewall", "load-balancer", "scheduler", "storage",
    "function", "monitor", "human-task", "entity", "aggregate",
    "value-object", "domain-event", "policy", "read-model", "saga",
    "repository", "bounded-context", "actor",
}

# Types whose width never follows the label
FIXED_SIZE_TYPES = {
    "event-stream", "event-processor", "state", "initial", "terminal", "choice",
}

SHAPE_HEIGHT_RATIO = 0.8

# Substituted for ids missing from the dimension table
DEFAULT_DIMENSIONS = (192, 56)

# ============================================================================
# Tag pills
# ============================================================================

TAG_PILLS = {
    "regular": {"pill_width": 64, "container_width": 176, "row_height": 22, "margin": 14},
    "compact": {"pill_width": 52, "container_width": 140, "row_height": 18, "margin": 10},
}

MAX_VISIBLE_TAGS = 4

# ============================================================================
# Nested children (expanded participants)
# ============================================================================

CHILD_SIZE = (100, 50)
CHILD_GAP = 20
CHILD_INSET = 16

# ============================================================================
# Zones
# ============================================================================

ZONE_PADDING = 40
ZONE_LABEL_HEIGHT = 28
MIN_ZONE_MEMBER_GAP = 24

# ============================================================================
# Connectors
# ============================================================================

BIDIRECTIONAL_CURVATURE = 0.35

SELF_LOOP = {
    # start/end offset from the vertical center, as a fraction of height
    "spread": 0.3,
    "min_width": 40,
    "width_ratio": 0.35,
    # extra loop width per additional self-loop on the same node
    "stagger": 24,
    "control_ratio": 0.55,
    "label_gap": 8,
}

# ============================================================================
# Spacing
# ============================================================================

MIN_RANK_SPACING = 200
RANK_LABEL_MARGIN = 60


def estimate_text_width(text: str, char_width: float) -> float:
    """Monospaced-width estimate: characters times average glyph width."""
    return len(text) * char_width


def round_half_up(value: float) -> int:
    """Round halves up (2.5 -> 3), unlike the built-in round()."""
    return math.floor(value + 0.5)
