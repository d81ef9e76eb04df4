# (marker, direction, eu threshold, eu unit, us threshold, us unit, label per language)
PREDICTIVE_THRESHOLDS = [
    ("Hematocrit", "rising", 52.0, "%", 52.0, "%",
     {"en": "polycythemia concern level", "nl": "zorgniveau voor polycytemie"}),
    ("Hematocrit", "rising", 54.0, "%", 54.0, "%",
     {"en": "clinical stop threshold", "nl": "klinische stopgrens"}),
    ("PSA", "rising", 4.0, "ug/L", 4.0, "ng/mL",
     {"en": "urology referral level", "nl": "verwijsgrens voor de uroloog"}),
    ("LDL Cholesterol", "rising", 4.0, "mmol/L", 155.0, "mg/dL",
     {"en": "elevated cardiovascular risk level", "nl": "verhoogd cardiovasculair risico"}),
    ("Testosterone", "falling", 12.1, "nmol/L", 350.0, "ng/dL",
     {"en": "lower therapeutic target (trough)", "nl": "ondergrens van het therapeutisch doel (dal)"}),
    ("ALT", "rising", 45.0, "U/L", 45.0, "U/L",
     {"en": "upper liver enzyme limit", "nl": "bovengrens leverenzym"}),
    ("Ferritin", "rising", 300.0, "ug/L", 300.0, "ng/mL",
     {"en": "iron overload concern level", "nl": "zorgniveau voor ijzerstapeling"}),
]
