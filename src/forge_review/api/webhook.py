"""
Webhook handler for pull request events.

Provides a FastAPI router that queues a review whenever GitHub reports
a pull request was opened or updated.
"""

from __future__ import annotations

import dataclasses
import hashlib
import hmac
from typing import Optional

import structlog
from fastapi import APIRouter, BackgroundTasks, Header, HTTPException, Request
from pydantic import BaseModel, ValidationError

from forge_review.config import ReviewConfig

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])

REVIEWABLE_ACTIONS = frozenset({"opened", "synchronize", "reopened", "ready_for_review"})

# Base configuration (set by application)
_config: Optional[ReviewConfig] = None


def set_config(config: ReviewConfig) -> None:
    """Set the base configuration used for queued reviews."""
    global _config
    _config = config


def get_config() -> ReviewConfig:
    if _config is None:
        set_config(ReviewConfig.from_env())
    return _config


class RepositoryRef(BaseModel):
    full_name: str


class PullRequestRef(BaseModel):
    number: int
    title: str = ""
    draft: bool = False


class PullRequestWebhookPayload(BaseModel):
    """GitHub pull_request payload (subset of fields)."""

    action: str
    number: int
    pull_request: PullRequestRef
    repository: RepositoryRef


def verify_signature(payload: bytes, signature: str, secret: str) -> bool:
    """
    Verify GitHub webhook signature.

    Args:
        payload: Raw request body
        signature: X-Hub-Signature-256 header value
        secret: Webhook secret

    Returns:
        True if signature is valid
    """
    if not signature.startswith("sha256="):
        return False

    expected = hmac.new(
        secret.encode(),
        payload,
        hashlib.sha256,
    ).hexdigest()

    return hmac.compare_digest(f"sha256={expected}", signature)


@router.post("/github")
async def handle_github_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    x_hub_signature_256: Optional[str] = Header(None),
    x_github_event: Optional[str] = Header(None),
):
    """
    Handle GitHub pull_request events.

    Args:
        request: FastAPI request
        background_tasks: Background task queue
        x_hub_signature_256: GitHub signature header
        x_github_event: GitHub event type header
    """
    config = get_config()

    # Read raw body for signature verification
    body = await request.body()

    if config.webhook_secret:
        if not x_hub_signature_256:
            raise HTTPException(status_code=401, detail="Missing signature")

        if not verify_signature(body, x_hub_signature_256, config.webhook_secret):
            raise HTTPException(status_code=401, detail="Invalid signature")

    if x_github_event != "pull_request":
        logger.info("Ignoring non-pull_request event", event=x_github_event)
        return {"status": "ignored", "reason": f"Event type '{x_github_event}' not handled"}

    try:
        payload = PullRequestWebhookPayload.model_validate_json(body)
    except ValidationError as e:
        logger.error("Failed to parse webhook payload", error=str(e))
        raise HTTPException(status_code=400, detail="Invalid payload")

    if payload.action not in REVIEWABLE_ACTIONS:
        logger.info("Ignoring pull_request action", action=payload.action)
        return {"status": "ignored", "reason": f"Action '{payload.action}' not handled"}

    repository = payload.repository.full_name
    logger.info(
        "Received pull_request webhook",
        repo=repository,
        pr_number=payload.number,
        action=payload.action,
    )

    run_config = dataclasses.replace(config, repository=repository, pr_number=payload.number)
    background_tasks.add_task(trigger_review, run_config)

    return {
        "status": "queued",
        "repository": repository,
        "pr_number": payload.number,
        "action": payload.action,
    }


async def trigger_review(config: ReviewConfig) -> None:
    """
    Run a queued review.

    Args:
        config: Configuration naming the repository and PR
    """
    from forge_review.runner import run_review

    logger.info("Starting review", repo=config.repository, pr_number=config.pr_number)

    try:
        report = await run_review(config)
        logger.info(
            "Review completed",
            repo=config.repository,
            pr_number=config.pr_number,
            files_reviewed=report.files_reviewed,
            total_comments=report.total_comments,
        )
    except Exception as e:
        logger.error(
            "Review failed",
            repo=config.repository,
            pr_number=config.pr_number,
            error=str(e),
        )
