"""Seed the database with baseline taxonomy and demo patterns for local search testing."""

from patternatlas.db.engine import SessionLocal, get_engine
from patternatlas.db.base import Base

# Import all models so create_all knows about them
import patternatlas.taxonomy.models  # noqa: F401

from patternatlas.taxonomy.models import Pattern
from patternatlas.taxonomy.seed import seed_taxonomy
from patternatlas.taxonomy.service import add_similarity, attach_tag

# Create tables
Base.metadata.create_all(get_engine())

db = SessionLocal()

seed_taxonomy(db)

# Check if already seeded
if db.query(Pattern).count() > 0:
    print("Patterns already seeded. Skipping.")
    db.close()
    exit(0)

# --- Patterns ---
patterns = [
    Pattern(
        id=1, title="Fraud detection with anomaly models",
        description="Score card transactions in real time with unsupervised anomaly models "
                    "and route outliers to a review queue.",
        company_type="Fintech", department="Data", role="Data Scientist",
        business_function="Predictive Modeling", ai_category="Anomaly Detection",
        difficulty_level="Advanced",
        typical_tech_stack={"streaming": "Kafka", "models": ["Isolation Forest", "Autoencoder"]},
        success_metrics={"false_positive_rate": "-35%"},
        company_examples=[
            {"company": "Stripe", "source": "engineering blog", "outcome": "Radar rules tuned by ML"},
            {"company": "PayPal", "source": "case study"},
        ],
        total_example_count=2,
        content_quality_score=80, extraction_confidence=0.90,
        pattern_verified=True, classification_status="verified",
    ),
    Pattern(
        id=2, title="Chatbot for support",
        description="Answer common support questions with a retrieval-augmented chatbot "
                    "and hand off to agents with the conversation summary.",
        company_type="SaaS", department="Customer Success", role="Support Engineer",
        business_function="Support Ticket Automation", ai_category="NLP",
        difficulty_level="Intermediate",
        company_examples=[{"company": "Intercom", "product": "Fin"}],
        total_example_count=1,
        content_quality_score=60, extraction_confidence=0.85,
        classification_status="classified",
    ),
    Pattern(
        id=3, title="Churn prediction from product usage",
        description="Predict account churn from feature usage and support signals so "
                    "customer success can intervene early.",
        company_type="SaaS", department="Customer Success", role="Customer Success Manager",
        business_function="Churn Risk Assessment", ai_category="Predictive Analytics",
        difficulty_level="Intermediate",
        content_quality_score=75, extraction_confidence=0.80,
        classification_status="classified",
    ),
    Pattern(
        id=4, title="Demand forecasting for autoscaling",
        description="Forecast request volume to scale infrastructure ahead of traffic spikes.",
        company_type="DevTools", department="Engineering", role="DevOps Engineer",
        business_function="Infrastructure Scaling", ai_category="Time Series",
        difficulty_level="Advanced",
        content_quality_score=70, extraction_confidence=0.75,
        classification_status="classified",
    ),
    Pattern(
        id=5, title="Ticket routing classifier",
        description="Classify inbound tickets by topic and urgency to route them to the "
                    "right queue; reduces fraud escalations reaching tier one.",
        company_type="E-commerce", department="Customer Success", role="Support Engineer",
        business_function="Support Ticket Automation", ai_category="Classification",
        difficulty_level="Beginner",
        content_quality_score=55, extraction_confidence=0.95,
        classification_status="pending",
    ),
]
db.add_all(patterns)
db.flush()

# --- Tags ---
for pattern_id, tag, confidence in [
    (1, "fraud", 1.0), (1, "real-time", 0.8), (2, "llm", 0.9), (2, "support", 1.0),
    (3, "churn", 1.0), (4, "forecasting", 0.9), (5, "support", 0.7), (5, "routing", 1.0),
]:
    attach_tag(db, pattern_id, tag, confidence)

# --- Similarities ---
add_similarity(db, 2, 5, 0.82, "same-function", "Both automate support ticket handling")
add_similarity(db, 3, 2, 0.41, "same-department")
add_similarity(db, 1, 5, 0.30, "same-industry")

db.commit()
db.close()
print("Seeded demo patterns.")
