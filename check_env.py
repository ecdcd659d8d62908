#!/usr/bin/env python3
"""Check the Green Credits .env file and Supabase settings, creating a template when missing."""

from pathlib import Path
import os
import sys

ENV_TEMPLATE = """# Supabase (optional; in-memory stores are used when unset)
GREEN_SUPABASE_URL=https://your-project-id.supabase.co
GREEN_SUPABASE_KEY=your-service-role-key-here

# API
GREEN_API_PREFIX=/api
# GREEN_FRONTEND_ALLOWED_ORIGINS=http://localhost:5173,http://127.0.0.1:5173

# Booth seed workbook
GREEN_BOOTHS_FILE=./data/booths.xlsx

# Points per kg, JSON object or type=rate pairs
# GREEN_RATE_TABLE={"plastic": 10, "paper": 5, "metal": 15, "glass": 8}
"""


def _mask(value: str) -> str:
    return value[:20] + "..." + value[-10:] if len(value) > 30 else value


def main():
    project_root = Path(__file__).parent
    env_file = project_root / ".env"

    print("=" * 60)
    print("Green Credits environment checker")
    print("=" * 60)

    if not env_file.exists():
        env_file.write_text(ENV_TEMPLATE, encoding="utf-8")
        print(f"❌ .env file NOT found, created a template at: {env_file}")
        print("⚠️  Edit .env and add your Supabase credentials, then run this again.")
        return

    print(f"✅ Found .env file at: {env_file}")
    for line in env_file.read_text(encoding="utf-8").splitlines():
        if line.startswith("GREEN_SUPABASE_KEY=") and "=" in line:
            name, value = line.split("=", 1)
            print(f"{name}={_mask(value.strip())}")
        else:
            print(line)
    print()

    for name in ("GREEN_SUPABASE_URL", "GREEN_SUPABASE_KEY"):
        value = os.getenv(name)
        print(f"✅ {name} (from environment): {_mask(value)}" if value else f"❌ {name} not found in environment")
    print()

    sys.path.insert(0, str(project_root / "src"))
    try:
        from greencredits.config import settings
    except Exception as e:
        print(f"❌ Error loading config: {e}")
        print("Make sure you're running this from the project root directory")
        return

    print(f"Rate table: {settings.rate_table}")
    print(f"Booths workbook: {settings.booths_file} ({'found' if settings.booths_file.exists() else 'missing'})")
    if settings.supabase_url and settings.supabase_key:
        print("✅ SUCCESS: Supabase is configured!")
    else:
        print("❌ Supabase is NOT configured; the API will use in-memory stores.")
        print("   Variables must start with the GREEN_ prefix. Restart the backend after editing .env.")


if __name__ == "__main__":
    main()
