# backend/config/constants.py

# -----------------------------
# CATALOG
# -----------------------------
from config.env import DEFAULT_COMMISSION_RATE

CATEGORIES = [
    "Web Development",
    "Mobile Development",
    "UI/UX Design",
    "Graphic Design",
    "Logo Design",
    "Content Writing",
    "Digital Marketing",
    "Video Editing",
    "Animation",
    "Data Analysis",
    "Translation",
    "Voice Over",
]

ALL_CATEGORIES = "all"

SORT_NEWEST = "newest"
SORT_PRICE_LOW = "price-low"
SORT_PRICE_HIGH = "price-high"
SORT_RATING = "rating"
SORT_POPULAR = "popular"

SORT_OPTIONS = (SORT_NEWEST, SORT_PRICE_LOW, SORT_PRICE_HIGH, SORT_RATING, SORT_POPULAR)

DEFAULT_PRICE_RANGE = (0.0, float("inf"))

# -----------------------------
# SELLER LEVELS (min completed orders)
# -----------------------------

SELLER_LEVEL_THRESHOLDS = [
    ("top_rated", 100),
    ("level_two", 50),
    ("level_one", 10),
    ("new_seller", 0),
]

# -----------------------------
# ADMIN SETTINGS DEFAULTS
# -----------------------------

DEFAULT_ADMIN_SETTINGS = {
    "site_title": "Leafora",
    "site_description": "Premium freelancing marketplace where talent meets opportunity",
    "tagline": "Grow Your Work, Grow Your Future",
    "hero_title": "Find the Perfect Freelance Services for Your Business",
    "hero_subtitle": "Discover talented freelancers and get your projects done professionally",
    "commission_rate": DEFAULT_COMMISSION_RATE,
    "tos_content": None,
    "privacy_policy_content": None,
    "refund_policy_content": None,
    "contact_email": "support@leafora.com",
    "featured_categories": [
        "Web Development",
        "UI/UX Design",
        "Content Writing",
        "Digital Marketing",
    ],
}

# -----------------------------
# TABLES
# -----------------------------

PROFILES = "profiles"
SERVICES = "services"
ORDERS = "orders"
MESSAGES = "messages"
REVIEWS = "reviews"
ADMIN_SETTINGS = "admin_settings"
ORDER_TIMELINE = "order_timeline"
AUDIT_LOGS = "audit_logs"
