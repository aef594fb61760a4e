#!/usr/bin/env python3
"""Seed the database with lead settings and a handful of demo leads."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "backend"))

from pathlib import Path

from leadflow.config import settings
from leadflow.runtime import build_runtime
from leadflow.services.lead_settings import load_settings_file

SAMPLES_DIR = Path(__file__).parent.parent / "samples"

DEMO_LEADS = [
    {
        "name": "Ayesha Khan",
        "phone": "03001234567",
        "email": "ayesha@example.com",
        "source": "referral",
        "intent": "buying",
        "timeline": "immediate",
        "details": {"budget_min": 15000000, "budget_max": 22000000, "preferred_areas": ["DHA Phase 6"]},
    },
    {
        "name": "Bilal Ahmed",
        "phone": "03211234567",
        "source": "website",
        "intent": "selling",
        "timeline": "within-1-month",
        "details": {"property_address": "House 12, Street 4, Gulberg", "expected_price": 30000000},
    },
    {
        "name": "Sara Malik",
        "phone": "03331234567",
        "email": "sara@example.com",
        "source": "social-media",
        "intent": "investing",
        "timeline": "long-term",
        "details": {"investment_budget": 50000000, "investment_type": "commercial"},
    },
]


def seed():
    runtime = build_runtime()
    try:
        # Persist the sample settings so they show up in GET /lead-settings
        sample = SAMPLES_DIR / "lead_settings.yaml"
        if sample.exists():
            runtime.settings_store.update(load_settings_file(sample))
            print(f"Loaded lead settings from {sample}")

        if runtime.lead_service.count() > 0:
            print("Leads already exist, skipping demo leads")
            return

        for data in DEMO_LEADS:
            result = runtime.lead_service.create(dict(data, workspace_id="demo"), actor=settings.admin_email)
            if result.ok:
                lead = result.lead
                print(f"Created lead {lead.id}: {lead.name} (score {lead.qualification_score}, {lead.priority})")
            else:
                print(f"Skipped {data['name']}: {[e.message for e in result.errors]}")
    finally:
        runtime.close()


if __name__ == "__main__":
    seed()
