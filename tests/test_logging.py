from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

# Garante que o pacote seja importável durante os testes locais
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from postboard.core.logging import JSONFormatter, setup_logging  # noqa: E402


def test_json_formatter_surfaces_known_extras():
    record = logging.LogRecord("postboard.test", logging.INFO, __file__, 1, "Created %s", ("post",), None)
    record.collection = "posts"
    record.entity_id = 3

    payload = json.loads(JSONFormatter().format(record))

    assert payload["message"] == "Created post"
    assert payload["level"] == "INFO"
    assert payload["collection"] == "posts"
    assert payload["entity_id"] == 3


def test_setup_logging_does_not_stack_handlers():
    setup_logging("DEBUG", "json")
    setup_logging("WARNING", "text")

    root = logging.getLogger()
    ours = [h for h in root.handlers if h.get_name() == "postboard"]
    assert len(ours) == 1
    assert root.level == logging.WARNING
