"""
mirrordocs.server.webhook - Rebuild documents on GitHub push events.

``POST /`` accepts the payload of a GitHub ``push`` webhook. When the pushed
branch matches the configured pattern, the documents of that branch are
built into ``dstdir/<branch>``. ``GET /`` answers with an empty body so the
endpoint can be probed.
"""

from __future__ import annotations

import logging
import re
import threading
from typing import Any, Callable

from flask import Flask, jsonify, request

from mirrordocs.application import BuildOutcome, run_build
from mirrordocs.config import BuildConfig
from mirrordocs.errors import MirrordocsError

_log = logging.getLogger(__name__)

BRANCH_PREFIX = "refs/heads/"

BuildFunction = Callable[[BuildConfig, logging.Logger], BuildOutcome]


class GenerateFromRefs:
    """Generates documents for pushed branches.

    Args:
        config: Build settings; ``srcdir`` must be inside a clone of the
            repository that sends the webhook.
        ref_regex: Branches whose pushes trigger a build.
        build: Function running the build (``run_build``).
        logger: Logger for trigger decisions and build output.

    Builds run one at a time: every build checks out refs in the same
    working tree and writes below the same destination directory.
    """

    def __init__(
        self,
        config: BuildConfig,
        ref_regex: str | re.Pattern[str],
        build: BuildFunction = run_build,
        logger: logging.Logger | None = None,
    ) -> None:
        self.config = config
        self.ref_regex = re.compile(ref_regex)
        self.build = build
        self.logger = logger or _log
        self._build_lock = threading.Lock()

    def branch_from_payload(self, payload: dict[str, Any]) -> str | None:
        """The pushed branch if it should trigger a build, else None."""
        ref = str(payload.get("ref", ""))
        if not ref.startswith(BRANCH_PREFIX):
            self.logger.info("Ref '%s' is not a branch, no document generation triggered", ref)
            return None

        branch = ref[len(BRANCH_PREFIX) :]
        if not branch or not self.ref_regex.search(branch):
            self.logger.info(
                "Ref '%s' does not match the document generation trigger, "
                "no document generation triggered",
                branch,
            )
            return None
        return branch

    def docs_from_gh_webhook(self, payload: dict[str, Any]) -> BuildOutcome | None:
        """Build the documents of the branch named in ``payload``.

        Returns:
            The build outcome, or None if the push did not trigger a build.
        """
        branch = self.branch_from_payload(payload)
        if branch is None:
            return None

        config = self.config.with_overrides(branch_regex=f"^{re.escape(branch)}$", tag_regex="")
        with self._build_lock:
            self.logger.info("Generating documents for branch '%s'...", branch)
            return self.build(config, self.logger)


def create_app(generator: GenerateFromRefs) -> Flask:
    """Create the Flask application receiving the webhook.

    Args:
        generator: Decides on and runs the builds.

    Returns:
        Configured Flask application.
    """
    app = Flask(__name__)

    @app.route("/", methods=["GET"])
    def probe():
        return ""

    @app.route("/", methods=["POST"])
    def push_event():
        payload = request.get_json(force=True, silent=True)
        if not isinstance(payload, dict):
            return jsonify({"error": "Expected a JSON object"}), 400

        try:
            outcome = generator.docs_from_gh_webhook(payload)
        except MirrordocsError as e:
            generator.logger.error("Document generation failed: %s", e)
            return jsonify({"error": str(e)}), 500

        if outcome is None:
            return jsonify({"triggered": False})
        return jsonify(
            {
                "triggered": True,
                "succeeded": outcome.succeeded,
                "failed": outcome.failed,
                "generated": outcome.generated,
                "failed_refs": outcome.failed_refs,
            }
        )

    return app


__all__ = ["GenerateFromRefs", "create_app"]
