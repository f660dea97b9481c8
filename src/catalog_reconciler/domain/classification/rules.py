from __future__ import annotations

from catalog_reconciler.domain.classification.model import KeywordRule, LedgerFix, RuleTables, VendorRule

# Match reasons
RULE_BASELINE_DEFAULT = "classification.baseline_default"
RULE_BASELINE_SPECIAL_VENDOR = "classification.baseline_special_vendor"
RULE_BASELINE_EXCLUDED = "classification.baseline_excluded"
VENDOR_RULE_PREFIX = "classification.vendor_rule"
KEYWORD_RULE_PREFIX = "classification.keyword_rule"
LEDGER_FIX_PREFIX = "classification.ledger_fix"

# Audit notes
NOTE_SPECIAL_VENDOR = "Japanese fish (special ledger code)"
NOTE_EXCLUDED = "Non-food item"

# Vendors whose fish items carry the special ledger code (substring match on the vendor field)
SPECIAL_VENDORS = (
    "east sea trading",
    "ohta foods",
    "true world foods",
    "atlanta mutual trading",
    "jfc",
)

SPECIAL_KEYWORDS = (
    "madai", "shima aji", "kohada", "hagatsuo", "hamachi", "hirame",
    "kanpachi", "maguro", "otoro", "chutoro", "akami", "uni",
    "amaebi", "botan ebi", "ikura", "anago", "conger", "engawa",
    "tai", "buri", "sake", "saba", "aji", "iwashi", "sanma",
    "sayori", "suzuki", "kinmedai", "nodoguro", "akamutsu",
    "mozuku", "ooba", "shiso", "yuzu", "wasabi", "nori",
    "dashi", "mirin", "usukuchi", "koikuchi",
)

EXCLUDED_KEYWORDS = (
    "toilet paper", "paper towel", "napkin", "glove", "bleach",
    "sanitizer", "detergent", "soap", "trash bag", "garbage bag",
    "aluminum foil", "plastic wrap", "cling film", "chopstick",
    "waribashi", "coaster", "drinking straw", "paper straw",
    "to-go", "togo", "takeout", "to go container", "deli container",
    "apron", "towel", "sponge",
    "brush", "mop", "broom", "rinse aid", "degreaser",
    "purchase summary", "delivery fee", "fuel surcharge",
)

VOLUME_KEYWORDS = (
    "oil", "vinegar", "sauce", "syrup", "juice", "wine", "sake",
    "mirin", "soy", "dressing", "broth", "stock", "cream",
    "milk", "water", "beer", "spirit", "liquor", "extract",
)

VENDOR_RULES = (
    VendorRule(vendor="Empire Distributors", category="Liquor", ledger_code="Event materials"),
    VendorRule(vendor="Breakthru Beverage", category="Liquor", ledger_code="Event materials"),
    VendorRule(vendor="Republic National Distributing Company", category="Liquor", ledger_code="Event materials"),
    VendorRule(vendor="Ecolab", category="Cleaning Supplies"),
    VendorRule(vendor="Cintas", category="Non-Food Items"),
)

# First match wins. Order matters.
KEYWORD_RULES = (
    KeywordRule(
        category="Cleaning Supplies",
        keywords=(
            "bleach", "sanitizer", "sanitize", "disinfect", "detergent",
            "soap", "degreaser", "cleaner", "cleaning", "rinse aid",
            "sponge", "brush", "mop", "broom", "scrub",
        ),
    ),
    KeywordRule(
        category="Bar Supplies",
        keywords=(
            "cocktail napkin", "bar napkin", "stir stick", "swizzle",
            "cocktail straw", "bar towel", "jigger", "shaker",
            "coaster", "toothpick", "cocktail pick", "bar pick",
            "bar mat", "pour spout", "speed pour",
        ),
    ),
    KeywordRule(
        category="Non-Food Items",
        keywords=(
            "toilet paper", "paper towel", "napkin", "glove", "nitrile",
            "trash bag", "garbage bag", "aluminum foil", "foil wrap",
            "plastic wrap", "cling film", "cling wrap", "saran",
            "chopstick", "waribashi", "straw", "to-go", "togo",
            "takeout", "take out", "to go container", "togo container",
            "deli container", "soup container", "food container",
            "lid", "cup sleeve", "paper cup", "plastic cup",
            "apron", "towel", "paper bag", "plastic bag",
            "to go box", "togo box", "takeout box",
            "paper plate", "foam plate", "plastic plate",
            "paper bowl", "foam bowl", "plastic bowl",
            "utensil", "plastic fork", "plastic spoon", "plastic knife",
            "purchase summary", "delivery fee", "fuel surcharge",
        ),
        whole_words=frozenset({"straw", "lid"}),
    ),
    KeywordRule(
        category="Liquor",
        keywords=("junmai", "ginjo", "sake", "shochu", "soju", "umeshu"),
        ledger_code="Event materials",
    ),
)

LEDGER_FIXES = (
    LedgerFix(category="Non-Food Items", from_ledger_code="5001", to_ledger_code="5000"),
    LedgerFix(category="Cleaning Supplies", from_ledger_code="5001", to_ledger_code="5000"),
    LedgerFix(category="Bar Supplies", from_ledger_code="5001", to_ledger_code="5000"),
    LedgerFix(category="Liquor", from_ledger_code="5000", to_ledger_code="Event materials"),
)

DEFAULT_TABLES = RuleTables(
    vendor_rules=VENDOR_RULES,
    keyword_rules=KEYWORD_RULES,
    ledger_fixes=LEDGER_FIXES,
    special_vendors=SPECIAL_VENDORS,
    special_keywords=SPECIAL_KEYWORDS,
    excluded_keywords=EXCLUDED_KEYWORDS,
    volume_keywords=VOLUME_KEYWORDS,
)
