from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict
from typing import Dict, List, Optional

from core.models import ChangeRecord
from core.notifier import Notifier
from core.wallet_state import short_addr
from wallet_config import is_valid_email

logger = logging.getLogger(__name__)

BLOCK_SEPARATOR = "\n\n---\n\n"


def recipient_for(change: ChangeRecord, default_recipient: Optional[str]) -> Optional[str]:
    if is_valid_email(change.email):
        return change.email.strip()
    if is_valid_email(default_recipient):
        return default_recipient.strip()
    return None


def group_by_recipient(changes: List[ChangeRecord],
                       default_recipient: Optional[str]) -> "OrderedDict[str, List[ChangeRecord]]":
    groups: "OrderedDict[str, List[ChangeRecord]]" = OrderedDict()
    for c in changes:
        to = recipient_for(c, default_recipient)
        if to is None:
            logger.warning("No recipient configured for %s; skipping notification", c.address)
            continue
        groups.setdefault(to, []).append(c)
    return groups


def compose(changes: List[ChangeRecord]) -> Dict[str, str]:
    subject = f"Wallet changes this cycle: {len(changes)} wallet(s)"
    blocks = []
    for c in changes:
        header = f"User: {c.user or '-'}  Label: {c.label or '-'}  ({short_addr(c.address)})"
        blocks.append("\n".join([header, *c.lines]))
    return {"subject": subject, "body": BLOCK_SEPARATOR.join(blocks)}


class NotificationAggregator:
    def __init__(self, notifier: Notifier, default_recipient: Optional[str] = None):
        self.notifier = notifier
        self.default_recipient = default_recipient

    async def dispatch(self, changes: List[ChangeRecord]) -> List[ChangeRecord]:
        """
        Send one message per recipient. Returns the changes whose message was
        accepted; only those may advance their wallet's baseline.
        """
        delivered: List[ChangeRecord] = []
        for to, group in group_by_recipient(changes, self.default_recipient).items():
            msg = compose(group)
            try:
                # Notifier.deliver is sync; keep it off the event loop
                await asyncio.to_thread(self.notifier.deliver, to, msg["subject"], msg["body"])
            except Exception as e:
                logger.error("[notify] %s -> %s failed: %s", msg["subject"], to, e)
                continue
            logger.info("[notify] %s -> %s", msg["subject"], to)
            delivered.extend(group)
        return delivered
