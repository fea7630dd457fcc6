"""System form templates installed for every tenant (``tenant_id`` None)."""

from __future__ import annotations

OFFICE_SUPPLIES_SCHEMA = {
    "version": "1.0",
    "title": "Office Supplies Purchase Request",
    "sections": [
        {
            "title": "Request",
            "fields": [
                {"key": "request_date", "label": "Request date", "type": "date", "validation": {"required": True}},
                {"key": "department", "label": "Department", "type": "text", "validation": {"required": True}},
                {
                    "key": "purpose",
                    "label": "Purpose",
                    "type": "textarea",
                    "validation": {"required": True, "minLength": 10},
                },
            ],
        },
        {
            "title": "Items",
            "fields": [
                {
                    "key": "items",
                    "label": "Items",
                    "type": "table",
                    "validation": {"required": True},
                    "minRows": 1,
                    "maxRows": 20,
                    "columns": [
                        {"key": "item_name", "label": "Item", "type": "text", "validation": {"required": True}},
                        {"key": "quantity", "label": "Quantity", "type": "number", "validation": {"required": True, "min": 1}},
                        {"key": "unit_price", "label": "Unit price", "type": "money", "validation": {"required": True, "min": 0}},
                        {
                            "key": "total_price",
                            "label": "Amount",
                            "type": "money",
                            "calculated": True,
                            "formula": "quantity * unit_price",
                        },
                        {"key": "note", "label": "Note", "type": "text"},
                    ],
                },
                {
                    "key": "total_amount",
                    "label": "Total amount",
                    "type": "money",
                    "calculated": True,
                    "formula": "sum(items.total_price)",
                },
                {
                    "key": "payment_method",
                    "label": "Payment method",
                    "type": "select",
                    "validation": {"required": True},
                    "options": [
                        {"value": "corporate_card", "label": "Corporate card"},
                        {"value": "cash", "label": "Cash"},
                        {"value": "transfer", "label": "Bank transfer"},
                    ],
                },
                {"key": "receipt", "label": "Quotation", "type": "file"},
            ],
        },
    ],
    "settings": {"submitButtonText": "Submit", "saveAsDraft": True, "autoSave": True, "autoSaveInterval": 30},
    "layout": {"columns": 12, "spacing": "normal"},
}

EXPENSE_CLAIM_SCHEMA = {
    "version": "1.0",
    "title": "Expense Claim",
    "sections": [
        {
            "title": "Period",
            "fields": [
                {"key": "period_start", "label": "From", "type": "date", "validation": {"required": True}},
                {"key": "period_end", "label": "To", "type": "date", "validation": {"required": True}},
            ],
        },
        {
            "title": "Expenses",
            "fields": [
                {
                    "key": "expenses",
                    "label": "Expenses",
                    "type": "table",
                    "validation": {"required": True},
                    "minRows": 1,
                    "columns": [
                        {"key": "date", "label": "Date", "type": "date", "validation": {"required": True}},
                        {
                            "key": "category",
                            "label": "Category",
                            "type": "select",
                            "validation": {"required": True},
                            "options": [
                                {"value": "transport", "label": "Transport"},
                                {"value": "meal", "label": "Meals"},
                                {"value": "accommodation", "label": "Accommodation"},
                                {"value": "entertainment", "label": "Entertainment"},
                                {"value": "other", "label": "Other"},
                            ],
                        },
                        {"key": "description", "label": "Description", "type": "text", "validation": {"required": True}},
                        {"key": "amount", "label": "Amount", "type": "money", "validation": {"required": True, "min": 0}},
                        {"key": "receipt_attached", "label": "Receipt attached", "type": "checkbox"},
                    ],
                },
                {
                    "key": "total_amount",
                    "label": "Total",
                    "type": "money",
                    "calculated": True,
                    "formula": "sum(expenses.amount)",
                },
                {"key": "receipts", "label": "Receipts", "type": "file"},
                {"key": "notes", "label": "Notes", "type": "textarea"},
            ],
        },
    ],
    "settings": {"submitButtonText": "Submit claim"},
    "layout": {"columns": 12},
}

BUSINESS_TRIP_PLAN_SCHEMA = {
    "version": "1.0",
    "title": "Business Trip Plan",
    "sections": [
        {
            "title": "Trip",
            "fields": [
                {
                    "key": "trip_type",
                    "label": "Trip type",
                    "type": "radio",
                    "validation": {"required": True},
                    "options": [
                        {"value": "domestic", "label": "Domestic"},
                        {"value": "international", "label": "International"},
                    ],
                },
                {"key": "destination", "label": "Destination", "type": "text", "validation": {"required": True}},
                {
                    "key": "passport_number",
                    "label": "Passport number",
                    "type": "text",
                    "validation": {"required": True, "pattern": "^[A-Z0-9]{6,12}$"},
                    "conditional": {"field": "trip_type", "operator": "equals", "value": "international"},
                },
                {"key": "purpose", "label": "Purpose", "type": "textarea", "validation": {"required": True}},
                {"key": "start_date", "label": "Departure", "type": "datetime", "validation": {"required": True}},
                {"key": "end_date", "label": "Return", "type": "datetime", "validation": {"required": True}},
                {"key": "attendees", "label": "Travelling with", "type": "text"},
            ],
        },
        {
            "title": "Budget",
            "fields": [
                {"key": "accommodation_budget", "label": "Accommodation", "type": "money", "validation": {"required": True, "min": 0}},
                {"key": "meal_budget", "label": "Meals", "type": "money", "validation": {"required": True, "min": 0}},
                {"key": "transportation_budget", "label": "Transport", "type": "money", "validation": {"required": True, "min": 0}},
                {"key": "miscellaneous_budget", "label": "Other", "type": "money", "validation": {"min": 0}},
                {
                    "key": "total_budget",
                    "label": "Total budget",
                    "type": "money",
                    "calculated": True,
                    "formula": "accommodation_budget + meal_budget + transportation_budget + miscellaneous_budget",
                },
                {"type": "divider"},
                {"key": "itinerary", "label": "Itinerary", "type": "textarea", "validation": {"required": True}},
                {"key": "expected_outcome", "label": "Expected outcome", "type": "textarea"},
            ],
        },
    ],
    "settings": {"submitButtonText": "Request approval", "saveAsDraft": True},
    "layout": {"columns": 12},
}

REMOTE_WORK_SCHEMA = {
    "version": "1.0",
    "title": "Remote Work Request",
    "sections": [
        {
            "title": "Remote work",
            "fields": [
                {"key": "work_date", "label": "Work date", "type": "date", "validation": {"required": True}},
                {
                    "key": "work_type",
                    "label": "Schedule",
                    "type": "select",
                    "validation": {"required": True},
                    "options": [
                        {"value": "full_day", "label": "Full day"},
                        {"value": "morning", "label": "Morning"},
                        {"value": "afternoon", "label": "Afternoon"},
                    ],
                },
                {"key": "reason", "label": "Reason", "type": "textarea", "validation": {"required": True}},
                {"key": "work_plan", "label": "Work plan", "type": "textarea", "validation": {"required": True}},
                {"key": "contact_number", "label": "Contact number", "type": "phone", "validation": {"required": True}},
                {"key": "work_location", "label": "Location", "type": "text", "validation": {"required": True}},
            ],
        }
    ],
    "settings": {"submitButtonText": "Apply", "saveAsDraft": False},
    "layout": {"columns": 12, "spacing": "normal"},
}

DEFAULT_TEMPLATES = (
    {"code": "OFFICE_SUPPLIES", "name": "Office supplies purchase", "icon": "shopping-cart", "schema": OFFICE_SUPPLIES_SCHEMA},
    {"code": "EXPENSE_CLAIM", "name": "Expense claim", "icon": "receipt", "schema": EXPENSE_CLAIM_SCHEMA},
    {"code": "BUSINESS_TRIP_PLAN", "name": "Business trip plan", "icon": "plane", "schema": BUSINESS_TRIP_PLAN_SCHEMA},
    {"code": "REMOTE_WORK", "name": "Remote work", "icon": "home", "schema": REMOTE_WORK_SCHEMA},
)
