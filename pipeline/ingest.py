"""Call payload ingestion — decodes STT channel output into validated segments.

This is the one hard failure boundary: input that cannot be decoded raises
PayloadError here, before any scoring happens.

Channel assignment: channel 0 (left) is the agent, who places the call and
introduces themselves; channel 1 (right) is the customer.
"""

import json
from pathlib import Path

from loguru import logger
from pydantic import ValidationError

from config.schemas import CallPayload, Segment, Speaker

AGENT_CHANNEL = 0
CUSTOMER_CHANNEL = 1

_IDENTIFIER_KEYS = ("call_id", "job_id", "batch_id", "file_name", "recording_url")


class PayloadError(ValueError):
    """Call input that is structurally invalid and cannot be scored."""


def _decode(result_data) -> dict:
    if result_data is None:
        return {}
    if isinstance(result_data, (str, bytes)):
        try:
            result_data = json.loads(result_data)
        except json.JSONDecodeError as e:
            raise PayloadError(f"result_data is not valid JSON: {e}") from e
    if not isinstance(result_data, dict):
        raise PayloadError(f"result_data must be an object, got {type(result_data).__name__}")
    return result_data


def parse_segments(raw_segments, speaker: Speaker) -> list[Segment]:
    """Validate raw segment dicts for one channel and tag them with the speaker."""
    if raw_segments is None:
        return []
    if not isinstance(raw_segments, list):
        raise PayloadError(f"{speaker.value} segments must be a list")
    try:
        return [
            Segment.model_validate({**seg, "speaker": speaker}) if isinstance(seg, dict)
            else Segment.model_validate(seg)
            for seg in raw_segments
        ]
    except ValidationError as e:
        raise PayloadError(f"Invalid {speaker.value} segment: {e}") from e


def segments_from_channels(items: list[dict]) -> tuple[list[Segment], list[Segment]]:
    """Split per-channel STT items ({channel, result_data}) into agent and customer segments.

    A missing channel yields no segments for that speaker.
    """
    if not isinstance(items, list) or not all(isinstance(i, dict) for i in items):
        raise PayloadError("channels must be a list of objects")
    by_channel = {}
    for item in sorted(items, key=lambda i: i.get("channel") or 0):
        channel = item.get("channel") or 0
        if channel in by_channel:
            logger.warning(f"Duplicate STT output for channel {channel} — keeping the first")
            continue
        by_channel[channel] = _decode(item.get("result_data")).get("segments")

    agent = parse_segments(by_channel.get(AGENT_CHANNEL), Speaker.AGENT)
    customer = parse_segments(by_channel.get(CUSTOMER_CHANNEL), Speaker.CUSTOMER)
    return agent, customer


def build_payload(data: dict) -> CallPayload:
    """Build a CallPayload from a decoded call document.

    Accepts either a pre-merged `transcript`, per-channel `channels` items, or
    explicit `agent_segments` / `customer_segments` lists.
    """
    if not isinstance(data, dict):
        raise PayloadError(f"Call payload must be an object, got {type(data).__name__}")

    if data.get("channels"):
        agent, customer = segments_from_channels(data["channels"])
    else:
        agent = parse_segments(data.get("agent_segments"), Speaker.AGENT)
        customer = parse_segments(data.get("customer_segments"), Speaker.CUSTOMER)

    analysis = data.get("analysis") or data.get("call_analysis") or {}
    if not isinstance(analysis, dict):
        logger.warning("Upstream analysis is not an object — ignoring it")
        analysis = {}

    transcript = data.get("transcript")
    if transcript is not None and not isinstance(transcript, str):
        raise PayloadError("transcript must be a string")

    identifiers = {k: str(data[k]) for k in _IDENTIFIER_KEYS if data.get(k) is not None}
    return CallPayload(
        **identifiers,
        product_type=data.get("product_type") or data.get("productType"),
        transcript=transcript,
        agent_segments=agent,
        customer_segments=customer,
        analysis=analysis,
    )


def load_call_payload(path: str | Path) -> CallPayload:
    """Read one call JSON file. The file stem becomes the call id when none is given."""
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise PayloadError(f"{path.name}: not valid JSON ({e})") from e

    payload = build_payload(data)
    if payload.call_id is None:
        payload = payload.model_copy(update={"call_id": path.stem})
    if payload.file_name is None:
        payload = payload.model_copy(update={"file_name": path.name})
    return payload
