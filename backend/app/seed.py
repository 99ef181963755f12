"""Seed the database with the premade form templates."""

from app.core.database import SessionLocal
from app.models import Template

SEED_TEMPLATES = [
    {
        "name": "Contact Us",
        "description": "Collect names, emails and messages from site visitors.",
        "category": "contact",
        "fields": [
            {"id": "name", "type": "short_text", "label": "Full name", "required": True},
            {"id": "email", "type": "email", "label": "Email address", "required": True},
            {
                "id": "topic",
                "type": "dropdown",
                "label": "What is this about?",
                "options": ["Sales", "Support", "Partnership", "Other"],
            },
            {"id": "message", "type": "long_text", "label": "Message", "required": True},
        ],
        "settings": {"is_public": True, "collect_emails": "responder_input"},
    },
    {
        "name": "Customer Satisfaction Survey",
        "description": "Measure how happy customers are with your service.",
        "category": "survey",
        "fields": [
            {
                "id": "satisfaction",
                "type": "rating",
                "label": "How satisfied are you overall?",
                "required": True,
                "options": [1, 2, 3, 4, 5],
            },
            {
                "id": "recommend",
                "type": "radio",
                "label": "Would you recommend us to a friend?",
                "options": ["Yes", "Maybe", "No"],
            },
            {
                "id": "liked",
                "type": "checkbox",
                "label": "What did you like?",
                "options": ["Price", "Quality", "Speed", "Support"],
            },
            {"id": "improve", "type": "long_text", "label": "What could we improve?"},
        ],
        "settings": {"is_public": True},
    },
    {
        "name": "Event Registration",
        "description": "Sign attendees up and collect session preferences.",
        "category": "event",
        "fields": [
            {"id": "name", "type": "short_text", "label": "Attendee name", "required": True},
            {"id": "email", "type": "email", "label": "Email", "required": True},
            {"id": "guests", "type": "number", "label": "Number of guests", "validation": {"min": 0, "max": 5}},
            {
                "id": "sessions",
                "type": "checkbox",
                "label": "Sessions you plan to attend",
                "options": ["Keynote", "Workshop A", "Workshop B", "Networking"],
            },
            {
                "id": "diet",
                "type": "radio",
                "label": "Dietary preference",
                "options": ["None", "Vegetarian", "Vegan", "Gluten free"],
            },
        ],
        "settings": {"is_public": True, "collect_emails": "responder_input", "send_response_copy": "requested"},
    },
    {
        "name": "Product Feedback",
        "description": "Rate product features and gather open feedback.",
        "category": "feedback",
        "fields": [
            {
                "id": "features",
                "type": "matrix",
                "label": "Rate each feature",
                "matrix_rows": ["Ease of use", "Performance", "Design"],
                "matrix_columns": ["Poor", "Fair", "Good", "Excellent"],
            },
            {
                "id": "score",
                "type": "rating",
                "label": "Overall score",
                "options": [1, 2, 3, 4, 5, 6, 7, 8, 9, 10],
            },
            {"id": "comments", "type": "long_text", "label": "Anything else?"},
        ],
        "settings": {"is_public": True},
    },
    {
        "name": "Appointment Request",
        "description": "Let clients request a time slot.",
        "category": "appointment",
        "fields": [
            {"id": "name", "type": "short_text", "label": "Name", "required": True},
            {"id": "phone", "type": "short_text", "label": "Phone", "validation": {"phone": True}},
            {"id": "date", "type": "date", "label": "Preferred date", "required": True},
            {
                "id": "slot",
                "type": "radio",
                "label": "Preferred time",
                "options": ["Morning", "Afternoon", "Evening"],
            },
        ],
        "settings": {"is_public": True, "collect_emails": "responder_input"},
    },
]


def seed_templates() -> list[Template]:
    """Insert premade templates that are not already present. Returns created templates."""
    db = SessionLocal()
    created: list[Template] = []
    try:
        existing = {
            name
            for (name,) in db.query(Template.name).filter(Template.is_premade.is_(True)).all()
        }
        for data in SEED_TEMPLATES:
            if data["name"] in existing:
                continue
            template = Template(is_premade=True, thumbnail="", **data)
            db.add(template)
            created.append(template)

        db.commit()
        for t in created:
            db.refresh(t)
        return created
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    templates = seed_templates()
    for t in templates:
        print(f"Created: {t.name} (id={t.id}, category={t.category})")
    print(f"\nSeeded {len(templates)} templates.")
