"""Transform planning: request directives in, ffmpeg arguments out.

Usage:
    from cliprelay.plan import ProcessingRequest, build_plan

    plan = build_plan(request, duration, output_path, music_path)
"""

from cliprelay.plan.builder import (
    PLAN_RULES,
    PlanRule,
    build_plan,
    describe_plan,
    select_plan_kind,
)
from cliprelay.plan.filters import (
    build_mix_filter,
    build_music_filter,
    clamp_start,
    clamp_volume,
    format_number,
    parse_lenient_float,
)
from cliprelay.plan.models import (
    AudioMode,
    EncoderSettings,
    FacingMode,
    FullTransform,
    MirrorOnly,
    PassThrough,
    PlanKind,
    ProcessingRequest,
    PublishResult,
    TransformPlan,
)

__all__ = [
    # Models
    "AudioMode",
    "EncoderSettings",
    "FacingMode",
    "FullTransform",
    "MirrorOnly",
    "PassThrough",
    "PlanKind",
    "ProcessingRequest",
    "PublishResult",
    "TransformPlan",
    # Builder
    "PLAN_RULES",
    "PlanRule",
    "build_plan",
    "describe_plan",
    "select_plan_kind",
    # Filters
    "build_mix_filter",
    "build_music_filter",
    "clamp_start",
    "clamp_volume",
    "format_number",
    "parse_lenient_float",
]
