"""
Export Data Script
Dumps listings (with images) and conversations (with messages) to a JSON
file, e.g. to seed a demo frontend.

Usage: python -m subleshnn.scripts.export_data [output_path]
"""

import json
import sys
from pathlib import Path
from typing import Any, Dict, List

from subleshnn.database.supabase_client import get_service_supabase
from supabase import Client
import logging

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

DEFAULT_OUTPUT = Path("export") / "data.json"


def _group_by(rows: List[Dict[str, Any]], key: str) -> Dict[str, List[Dict[str, Any]]]:
    grouped: Dict[str, List[Dict[str, Any]]] = {}
    for row in rows:
        grouped.setdefault(row[key], []).append(row)
    return grouped


def export_listings(supabase: Client) -> List[Dict[str, Any]]:
    """Listings newest first, each with its images"""
    logger.info("Fetching listings...")
    listings = supabase.table("listings")\
        .select("*")\
        .order("created_at", desc=True)\
        .execute().data or []
    images = supabase.table("listing_images")\
        .select("id, listing_id, image_url, thumbnail_url, is_primary, caption, position")\
        .execute().data or []
    by_listing = _group_by(images, "listing_id")
    for listing in listings:
        listing["listing_images"] = by_listing.get(listing["id"], [])
    return listings


def export_conversations(supabase: Client) -> List[Dict[str, Any]]:
    """Conversations newest first, each with its messages in order"""
    logger.info("Fetching conversations...")
    conversations = supabase.table("conversations")\
        .select("*")\
        .order("created_at", desc=True)\
        .execute().data or []
    messages = supabase.table("messages")\
        .select("id, conversation_id, sender_id, content, created_at")\
        .order("created_at")\
        .execute().data or []
    by_conversation = _group_by(messages, "conversation_id")
    for conversation in conversations:
        conversation["messages"] = by_conversation.get(conversation["id"], [])
    return conversations


def export_data(supabase: Client, output_path: Path) -> Dict[str, int]:
    data = {
        "listings": export_listings(supabase),
        "conversations": export_conversations(supabase),
    }
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(json.dumps(data, indent=2, default=str))
    counts = {name: len(rows) for name, rows in data.items()}
    logger.info(f"Exported {counts['listings']} listings, {counts['conversations']} conversations to {output_path}")
    return counts


def main():
    output_path = Path(sys.argv[1]) if len(sys.argv) > 1 else DEFAULT_OUTPUT
    try:
        export_data(get_service_supabase(), output_path)
    except Exception as e:
        logger.error(f"Export failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
