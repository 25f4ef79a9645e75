"""Static keyword data for risk scoring.

Both lists can be replaced from config (``scoring.critical_keywords`` and
``scoring.common_passwords``).
"""

from __future__ import annotations

# Matched case-insensitively against "<name> <url>"
CRITICAL_CATEGORIES: tuple[str, ...] = (
    # Banking & finance
    "bank", "banking", "financial", "finance", "paypal", "venmo", "cash",
    "investment", "trading", "crypto", "bitcoin", "wallet", "credit", "loan",
    "mortgage",
    # Work & email
    "work", "office", "company", "corporate", "enterprise", "business",
    "professional", "gmail", "outlook", "email", "microsoft", "google", "aws",
    "azure", "office365",
    # Government & legal
    "government", "gov", "irs", "tax", "legal", "court", "dmv",
    "social security",
    # Healthcare
    "health", "medical", "hospital", "doctor", "pharmacy", "insurance",
    # Utilities
    "utility", "electric", "gas", "water", "internet", "phone", "mobile",
)

# Matched case-insensitively as substrings of the secret
COMMON_PASSWORDS: tuple[str, ...] = (
    "password", "123456", "qwerty", "abc123", "admin", "letmein", "welcome",
    "monkey", "111111", "dragon", "master", "princess",
)

SEQUENTIAL_PATTERN = r"123|abc|qwe|asd|zxc"
REPEATED_PATTERN = r"(.)\1{2,}"
