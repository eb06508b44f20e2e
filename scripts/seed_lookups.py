#!/usr/bin/env python3
"""Insert the lookup seed (relative types, source types, categories...) into Neo4j.

Reads seeds/lookups.yaml (or SEED_PATH) and adds rows whose name is not
present yet. Run from repo root with .env (NEO4J_URI, NEO4J_USER,
NEO4J_PASSWORD). Idempotent.
"""
import os
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(REPO_ROOT / "src"))

from dotenv import load_dotenv  # noqa: E402
from neo4j import GraphDatabase  # noqa: E402

from prosopo.infrastructure import (  # noqa: E402
    Neo4jCatalogRepository,
    apply_seed,
    ensure_catalog_constraints,
    load_seed,
)

load_dotenv(REPO_ROOT / ".env")


def main() -> int:
    uri = os.environ.get("NEO4J_URI", "bolt://localhost:7687").strip()
    user = os.environ.get("NEO4J_USER", "neo4j").strip()
    password = os.environ.get("NEO4J_PASSWORD", "password").strip()
    driver = GraphDatabase.driver(uri, auth=(user, password))
    try:
        seed = load_seed()
        ensure_catalog_constraints(driver)
        inserted = apply_seed(Neo4jCatalogRepository(driver), seed)
        if not inserted:
            print("Lookups already seeded. Nothing to do.")
        else:
            print(f"Inserted {inserted} lookup row(s).")
        return 0
    except Exception as e:
        print(f"Seeding failed: {e}", file=sys.stderr)
        return 1
    finally:
        driver.close()


if __name__ == "__main__":
    sys.exit(main())
