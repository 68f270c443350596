"""Static question bank for the daily challenge.

Each entry: question, options, correctAnswer (index into options),
explanation.
"""

from __future__ import annotations

from typing import Any

QUESTION_BANK: list[dict[str, Any]] = [
    {
        "question": "What is the term of copyright protection in India for original literary works?",
        "options": ["50 years", "60 years", "70 years", "Lifetime + 60 years"],
        "correctAnswer": 3,
        "explanation": "In India, copyright lasts for the lifetime of the author plus 60 years.",
    },
    {
        "question": "Which symbol is used to indicate a registered trademark?",
        "options": ["©", "™", "®", "℗"],
        "correctAnswer": 2,
        "explanation": "® symbol indicates a registered trademark.",
    },
    {
        "question": "What is the maximum term for a patent in India?",
        "options": ["10 years", "20 years", "25 years", "30 years"],
        "correctAnswer": 1,
        "explanation": "Patents in India are valid for 20 years from the date of filing.",
    },
    {
        "question": "Which of the following is NOT protected under copyright?",
        "options": ["Ideas", "Books", "Music", "Paintings"],
        "correctAnswer": 0,
        "explanation": "Copyright protects expression, not ideas themselves.",
    },
    {
        "question": "GI stands for:",
        "options": ["Global Indication", "Geographical Indication", "General Indication", "Government Indication"],
        "correctAnswer": 1,
        "explanation": "GI stands for Geographical Indication.",
    },
    {
        "question": "What is the primary purpose of a trademark?",
        "options": ["Protect inventions", "Identify goods/services", "Protect artistic works", "Protect designs"],
        "correctAnswer": 1,
        "explanation": "Trademarks identify and distinguish goods or services.",
    },
    {
        "question": "Which Indian product was the first to receive GI tag?",
        "options": ["Basmati Rice", "Darjeeling Tea", "Mysore Silk", "Kanchipuram Silk"],
        "correctAnswer": 1,
        "explanation": "Darjeeling Tea was the first Indian product to get GI tag in 2003.",
    },
    {
        "question": "What does 'patent pending' mean?",
        "options": ["Patent granted", "Patent application filed", "Patent rejected", "Patent expired"],
        "correctAnswer": 1,
        "explanation": "Patent pending means a patent application has been filed but not yet granted.",
    },
]
