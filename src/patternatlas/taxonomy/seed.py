"""Baseline taxonomy rows for tech companies.

seed_taxonomy() inserts company types, departments, AI categories and
business functions that are not already present (matched by name), so it can
be run repeatedly against the same store.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from patternatlas.taxonomy.models import AICategory, BusinessFunction, CompanyType, Department

logger = logging.getLogger(__name__)


COMPANY_TYPES: list[dict] = [
    {"name": "SaaS", "description": "Software as a Service companies",
     "typical_departments": ["Engineering", "Product", "Customer Success", "Data"]},
    {"name": "E-commerce", "description": "Online retail and marketplace platforms",
     "typical_departments": ["Engineering", "Product", "Marketing", "Operations"]},
    {"name": "Fintech", "description": "Financial technology companies",
     "typical_departments": ["Engineering", "Product", "Risk", "Compliance", "Data"]},
    {"name": "DevTools", "description": "Developer tools and infrastructure",
     "typical_departments": ["Engineering", "Product", "Developer Relations", "Data"]},
    {"name": "Data Platform", "description": "Data infrastructure and analytics platforms",
     "typical_departments": ["Engineering", "Data", "Product", "Customer Success"]},
    {"name": "Security", "description": "Cybersecurity and privacy platforms",
     "typical_departments": ["Engineering", "Security", "Product", "Sales"]},
    {"name": "EdTech", "description": "Educational technology platforms",
     "typical_departments": ["Engineering", "Product", "Content", "Data"]},
    {"name": "HealthTech", "description": "Healthcare technology (software focus)",
     "typical_departments": ["Engineering", "Product", "Compliance", "Data"]},
]

DEPARTMENTS: list[dict] = [
    {"name": "Engineering", "description": "Software development and technical infrastructure",
     "typical_roles": ["Backend Engineer", "Frontend Engineer", "DevOps Engineer",
                       "Data Engineer", "ML Engineer", "Security Engineer"]},
    {"name": "Product", "description": "Product management and design",
     "typical_roles": ["Product Manager", "UX Designer", "Product Designer",
                       "Growth PM", "Technical PM"]},
    {"name": "Data", "description": "Data science and analytics",
     "typical_roles": ["Data Scientist", "Analytics Engineer", "BI Developer",
                       "ML Researcher", "Data Analyst"]},
    {"name": "Customer Success", "description": "Customer-facing operations and support",
     "typical_roles": ["Customer Success Manager", "Support Engineer", "Sales Engineer",
                       "Implementation Manager"]},
    {"name": "Marketing", "description": "Growth and customer acquisition",
     "typical_roles": ["Growth Marketer", "Content Manager", "Marketing Analyst",
                       "SEO Specialist"]},
    {"name": "Sales", "description": "Revenue generation and customer acquisition",
     "typical_roles": ["Sales Manager", "Account Executive", "Sales Engineer",
                       "Revenue Operations"]},
    {"name": "Operations", "description": "Business operations and strategy",
     "typical_roles": ["Operations Manager", "Business Analyst", "Strategy Manager",
                       "Finance Manager"]},
]

AI_CATEGORIES: list[dict] = [
    {"name": "NLP", "description": "Natural Language Processing and text analysis",
     "technical_complexity": "Medium",
     "common_use_cases": ["Chatbots", "Content Analysis", "Search", "Translation"]},
    {"name": "Computer Vision", "description": "Image and video analysis",
     "technical_complexity": "High",
     "common_use_cases": ["Image Recognition", "Quality Control", "Fraud Detection"]},
    {"name": "Recommendation Systems", "description": "Personalization and content recommendation",
     "technical_complexity": "Medium",
     "common_use_cases": ["Product Recommendations", "Content Personalization", "Search Ranking"]},
    {"name": "Predictive Analytics", "description": "Forecasting and trend analysis",
     "technical_complexity": "Medium",
     "common_use_cases": ["Demand Forecasting", "Churn Prediction", "Risk Assessment"]},
    {"name": "Anomaly Detection", "description": "Identifying unusual patterns",
     "technical_complexity": "Medium",
     "common_use_cases": ["Fraud Detection", "System Monitoring", "Quality Control"]},
    {"name": "Optimization", "description": "Resource and process optimization",
     "technical_complexity": "High",
     "common_use_cases": ["Route Optimization", "Resource Allocation", "Pricing"]},
    {"name": "Classification", "description": "Categorization and labeling",
     "technical_complexity": "Low",
     "common_use_cases": ["Content Moderation", "Lead Scoring", "Ticket Routing"]},
    {"name": "Time Series", "description": "Time-based data analysis",
     "technical_complexity": "Medium",
     "common_use_cases": ["Forecasting", "Trend Analysis", "Capacity Planning"]},
]

# (name, category, description, department name)
BUSINESS_FUNCTIONS: list[tuple[str, str, str, str]] = [
    ("API Performance Optimization", "operational",
     "Using AI to optimize API response times and reliability", "Engineering"),
    ("Code Quality Assurance", "operational",
     "Automated code review and bug prediction", "Engineering"),
    ("Infrastructure Scaling", "operational",
     "Intelligent auto-scaling based on demand prediction", "Engineering"),
    ("Security Threat Detection", "operational",
     "AI-powered threat detection and response", "Engineering"),
    ("Database Optimization", "operational",
     "Query optimization and performance tuning", "Engineering"),
    ("Feature Usage Analysis", "analytical",
     "Understanding which features drive user engagement", "Product"),
    ("User Experience Optimization", "operational",
     "A/B testing and personalization", "Product"),
    ("Product Roadmap Prioritization", "strategic",
     "Data-driven feature prioritization", "Product"),
    ("User Onboarding Optimization", "operational",
     "Personalizing user onboarding flows", "Product"),
    ("Customer Segmentation", "analytical",
     "Grouping customers for targeted strategies", "Data"),
    ("Predictive Modeling", "analytical",
     "Building models for business forecasting", "Data"),
    ("Data Pipeline Automation", "operational",
     "Automating ETL and data processing", "Data"),
    ("Business Intelligence", "analytical",
     "Automated insights and reporting", "Data"),
    ("Churn Risk Assessment", "analytical",
     "Identifying customers at risk of leaving", "Customer Success"),
    ("Support Ticket Automation", "operational",
     "Automated ticket routing and responses", "Customer Success"),
    ("Customer Health Scoring", "analytical",
     "Measuring customer success and satisfaction", "Customer Success"),
    ("Upsell Opportunity Detection", "analytical",
     "Identifying expansion opportunities", "Customer Success"),
]


def _existing_names(db: Session, model) -> set[str]:
    return set(db.execute(select(model.name)).scalars())


def seed_taxonomy(db: Session) -> dict[str, int]:
    """Insert missing baseline dimension rows and commit.

    Returns:
        Count of newly inserted rows per dimension table.
    """
    inserted = {
        "company_types": 0,
        "departments": 0,
        "ai_categories": 0,
        "business_functions": 0,
    }

    for table, model, rows in (
        ("company_types", CompanyType, COMPANY_TYPES),
        ("departments", Department, DEPARTMENTS),
        ("ai_categories", AICategory, AI_CATEGORIES),
    ):
        existing = _existing_names(db, model)
        for row in rows:
            if row["name"] in existing:
                continue
            db.add(model(**row))
            inserted[table] += 1
    db.flush()

    departments = {
        d.name: d.id for d in db.execute(select(Department)).scalars()
    }
    existing = _existing_names(db, BusinessFunction)
    for name, category, description, department in BUSINESS_FUNCTIONS:
        if name in existing:
            continue
        db.add(
            BusinessFunction(
                name=name,
                category=category,
                description=description,
                department_id=departments.get(department),
            )
        )
        inserted["business_functions"] += 1

    db.commit()
    logger.info("Seeded taxonomy: %s", inserted)
    return inserted
