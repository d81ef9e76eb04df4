INJECTION_FREQUENCIES = [
    {"value": "unknown", "doses_per_week": None,
     "label": {"en": "Unknown / not set", "nl": "Onbekend / niet ingevuld"},
     "aliases": ["unknown", "onbekend", "none", "niet ingevuld"]},
    {"value": "1x_week", "doses_per_week": 1,
     "label": {"en": "1x per week", "nl": "1x per week"},
     "aliases": ["1x/week", "1x per week", "1 per week", "once weekly", "1 keer per week", "weekly"]},
    {"value": "2x_week", "doses_per_week": 2,
     "label": {"en": "2x per week", "nl": "2x per week"},
     "aliases": ["2x/week", "2x per week", "2 per week", "twice weekly", "2 keer per week"]},
    {"value": "3x_week", "doses_per_week": 3,
     "label": {"en": "3x per week", "nl": "3x per week"},
     "aliases": ["3x/week", "3x per week", "3 per week", "three times weekly", "3 keer per week"]},
    {"value": "eod", "doses_per_week": 3.5,
     "label": {"en": "E.O.D. (every other day, 3.5x/week)", "nl": "E.O.D. (om de dag, 3.5x/week)"},
     "aliases": ["eod", "every other day", "om de dag", "qod", "3.5x/week", "3,5x/week", "3.5 times per week"]},
    {"value": "4x_week", "doses_per_week": 4,
     "label": {"en": "4x per week", "nl": "4x per week"},
     "aliases": ["4x/week", "4x per week", "4 per week", "4 keer per week"]},
    {"value": "5x_week", "doses_per_week": 5,
     "label": {"en": "5x per week", "nl": "5x per week"},
     "aliases": ["5x/week", "5x per week", "5 per week", "5 keer per week"]},
    {"value": "daily", "doses_per_week": 7,
     "label": {"en": "Daily (7x/week)", "nl": "Dagelijks (7x/week)"},
     "aliases": ["daily", "ed", "every day", "dagelijks", "iedere dag", "7x/week", "7 keer per week"]},
    {"value": "every_3_days", "doses_per_week": 7 / 3,
     "label": {"en": "Every 3 days (~2.33x/week)", "nl": "Elke 3 dagen (~2.33x/week)"},
     "aliases": ["every 3 days", "elke 3 dagen", "q3d"]},
    {"value": "every_5_days", "doses_per_week": 7 / 5,
     "label": {"en": "Every 5 days (~1.4x/week)", "nl": "Elke 5 dagen (~1.4x/week)"},
     "aliases": ["every 5 days", "elke 5 dagen", "q5d"]},
    {"value": "every_7_days", "doses_per_week": 1,
     "label": {"en": "Every 7 days (1x/week)", "nl": "Elke 7 dagen (1x/week)"},
     "aliases": ["every 7 days", "elke 7 dagen", "q7d"]},
    {"value": "every_10_days", "doses_per_week": 0.7,
     "label": {"en": "Every 10 days (~0.7x/week)", "nl": "Elke 10 dagen (~0.7x/week)"},
     "aliases": ["every 10 days", "elke 10 dagen", "q10d"]},
]
