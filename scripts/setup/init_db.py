"""
Initialize database: creates all tables.
Run once before first launch, or after adding new models.
Usage: python scripts/setup/init_db.py
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

from fleetwatch.database import Base, create_tables, engine
from fleetwatch.config import settings
from sqlalchemy import inspect, text


def main():
    print("🗄️  FleetWatch DB Initialization")
    print("=" * 40)
    print(f"📡 Database: {settings.DATABASE_URL}")

    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        print("✅ Database connection OK")
    except Exception as e:
        print(f"❌ Cannot connect to database: {e}")
        print("\nMake sure PostgreSQL is running and DATABASE_URL is correct.")
        sys.exit(1)

    print("\n📋 Creating tables...")
    create_tables()

    existing = set(inspect(engine).get_table_names())
    print(f"\n📊 Geofence tables ({len(Base.metadata.tables)} total):")
    for name in sorted(Base.metadata.tables):
        print(f"   {'✓' if name in existing else '✗'} {name}")

    print("\n🎉 Database ready! Start the backend with:")
    print("   uvicorn fleetwatch.main:app --host 0.0.0.0 --port 8080")


if __name__ == "__main__":
    main()
