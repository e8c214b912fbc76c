from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any

from pydantic import ValidationError

from listing_composer.core.config import settings
from listing_composer.core.telemetry import get_tracer, setup_telemetry
from listing_composer.schemas.draft import ListingDraft
from listing_composer.services.kv_store import build_kv_store
from listing_composer.services.normalizer import normalize
from listing_composer.services.persistence import DraftPersistence
from listing_composer.services.validator import error_messages, summarize_errors, validate

log = logging.getLogger("ops.check_draft")


def _load_file(path: str, kind: str) -> ListingDraft:
    with open(path, "r", encoding="utf-8") as f:
        data: Any = json.load(f)
    if not isinstance(data, dict):
        raise ValueError("expected a JSON object")
    if kind == "listing":
        return ListingDraft.from_listing(data)
    return ListingDraft.model_validate(data)


def _load_slot(key: str) -> ListingDraft | None:
    saved = DraftPersistence(build_kv_store(settings), key).load()
    return saved.to_draft() if saved else None


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="Validate a listing draft and print its submission payload.")
    src = p.add_mutually_exclusive_group(required=True)
    src.add_argument("--file", help="path to a draft JSON file")
    src.add_argument("--slot", help="draft slot key in the configured backend (DRAFT_BACKEND)")
    p.add_argument(
        "--kind",
        choices=["draft", "listing"],
        default="draft",
        help="file shape: saved draft {formData,...} or listing document",
    )
    p.add_argument("--all-errors", action="store_true", help="print every error instead of a summary")
    p.add_argument("--trace", action="store_true", help="export spans to OTLP_ENDPOINT")
    p.add_argument("-v", "--verbose", action="store_true")
    args = p.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)
    if args.trace:
        setup_telemetry()

    tracer = get_tracer("ops.check_draft")
    with tracer.start_as_current_span("ops.check_draft"):
        try:
            draft = _load_file(args.file, args.kind) if args.file else _load_slot(args.slot)
        except (OSError, ValueError, ValidationError) as e:
            print(f"Cannot read draft: {e}", file=sys.stderr)
            return 2
        if draft is None:
            print(f"No draft saved under {args.slot!r}", file=sys.stderr)
            return 2

        errors = validate(draft)
        if errors:
            if args.all_errors:
                for field, message in errors.items():
                    print(f"{field}: {message}", file=sys.stderr)
            else:
                print(summarize_errors(error_messages(errors), limit=settings.error_summary_limit), file=sys.stderr)
            return 1

        print(json.dumps(normalize(draft).to_payload(), indent=2, ensure_ascii=False))
        return 0


if __name__ == "__main__":
    raise SystemExit(main())
