# Draft/context marker protocol and draft-to-tracker helpers.

from product_helper.drafts.creation import CreationRequest, build_creation_request, submit
from product_helper.drafts.markers import (
    ContextSignal,
    DraftKind,
    ParsedReply,
    Segment,
    draft_filename,
    extract_context_signal,
    extract_title,
    parse_reply,
    scan_reply,
)
from product_helper.drafts.milestones import format_milestone_entry, splice_milestone

__all__ = [
    "ContextSignal",
    "CreationRequest",
    "DraftKind",
    "ParsedReply",
    "Segment",
    "build_creation_request",
    "draft_filename",
    "extract_context_signal",
    "extract_title",
    "format_milestone_entry",
    "parse_reply",
    "scan_reply",
    "splice_milestone",
    "submit",
]
