"""Default hierarchical categories created for every new user.

Static data only: ``(name, icon, color, children)`` where ``children`` is a
list of ``(name, icon, color)``. Sort order follows list position.
"""

from __future__ import annotations

DefaultCategory = tuple[str, str, str, list[tuple[str, str, str]]]

DEFAULT_CATEGORIES: list[DefaultCategory] = [
    ("Salary", "💰", "#22C55E", []),
    ("Freelance", "💼", "#16A34A", []),
    (
        "Food & Dining",
        "🍽️",
        "#F97316",
        [
            ("Groceries", "🛒", "#FB923C"),
            ("Restaurants", "🍴", "#F97316"),
            ("Delivery Apps", "📱", "#EA580C"),
            ("Coffee & Snacks", "☕", "#C2410C"),
        ],
    ),
    (
        "Shopping",
        "🛍️",
        "#3B82F6",
        [
            ("Clothing", "👕", "#60A5FA"),
            ("Electronics", "📱", "#3B82F6"),
            ("Home & Garden", "🏡", "#2563EB"),
        ],
    ),
    (
        "Transport",
        "🚗",
        "#8B5CF6",
        [
            ("Fuel", "⛽", "#A78BFA"),
            ("Public Transport", "🚌", "#8B5CF6"),
            ("Cab/Taxi", "🚕", "#7C3AED"),
        ],
    ),
    ("Entertainment", "🎬", "#EC4899", []),
    (
        "Bills & Utilities",
        "💡",
        "#6366F1",
        [
            ("Electricity", "⚡", "#818CF8"),
            ("Internet", "🌐", "#6366F1"),
            ("Phone", "📞", "#4F46E5"),
            ("Subscriptions", "📺", "#4338CA"),
            ("Rent", "🏠", "#3730A3"),
        ],
    ),
    ("Health", "🏥", "#10B981", []),
]
