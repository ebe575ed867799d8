"""Email connector - sandboxed (writes to file instead of sending)."""

import json
import uuid
from pathlib import Path
from datetime import datetime, timezone
from typing import Dict, Any, List, Optional


class EmailConnector:
    """Outbound email connector that records messages in a sandbox directory.

    Delivery through a real provider is outside this service; transactional
    messages (verification links) are written as JSON files, one per message,
    so they can be inspected or picked up by a relay.
    """

    def __init__(self, sandbox_dir: Path = Path("sandbox/emails"), sender: str = "no-reply@creditdesk.local"):
        """Initialize email connector.

        Args:
            sandbox_dir: Directory to write sent messages to
            sender: From address recorded on every message
        """
        self.sandbox_dir = Path(sandbox_dir)
        self.sender = sender

    def send(self, recipients: List[str], subject: str, body: str,
             html: Optional[str] = None, **kwargs) -> Dict[str, Any]:
        """Send an email (sandboxed - writes to sent file).

        Returns:
            Result dictionary with success status and message_id
        """
        sent_at = datetime.now(timezone.utc)
        message_id = f"msg_{sent_at.strftime('%Y%m%d_%H%M%S')}_{uuid.uuid4().hex[:8]}"
        sent_file = self.sandbox_dir / "sent" / f"{message_id}.json"
        sent_file.parent.mkdir(parents=True, exist_ok=True)

        sent_data = {
            "message_id": message_id,
            "from": self.sender,
            "recipients": recipients,
            "subject": subject,
            "body": body,
            "html": html,
            "sent_at": sent_at.isoformat(),
            "status": "sent",
            **kwargs
        }

        with open(sent_file, "w", encoding="utf-8") as f:
            json.dump(sent_data, f, indent=2)

        return {
            "success": True,
            "message_id": message_id,
            "file_path": str(sent_file),
        }


_email_connector: Optional[EmailConnector] = None


def get_email_connector() -> EmailConnector:
    """Get global email connector, rooted at the configured sandbox directory."""
    global _email_connector
    if _email_connector is None:
        from ..config import config
        _email_connector = EmailConnector(sandbox_dir=config.EMAIL_SANDBOX_DIR)
    return _email_connector
