from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


@dataclass(frozen=True)
class SupabaseConfig:
    url: str = os.getenv("SUPABASE_URL", "")
    key: str = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "") or os.getenv("SUPABASE_ANON_KEY", "")
    businesses_table: str = "businesses"
    images_table: str = "business_images"
    curated_rpc: str = "get_curated_businesses"
    featured_rpc: str = "get_featured_businesses"
    featured_region: str | None = os.getenv("CURATION_FEATURED_REGION") or None

    @property
    def enabled(self) -> bool:
        return bool(self.url and self.key)


DEFAULT_SUPABASE_CONFIG = SupabaseConfig()
