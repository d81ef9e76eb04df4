TESTOSTERONE_NMOL_TO_NGDL = 28.84
FREE_TESTOSTERONE_NMOL_TO_PGML = 288.4
ESTRADIOL_PGML_TO_PMOL = 3.671
HEMOGLOBIN_GPL_TO_MMOLL = 0.06206
HEMOGLOBIN_GPDL_TO_MMOLL = 0.6206
MCH_PG_TO_FMOL = 0.06206
CHOLESTEROL_MMOL_TO_MGDL = 38.67

# canonical marker -> (eu unit, us unit, factor so that us_value = eu_value * factor)
SYSTEM_CONVERSIONS = {
    "Testosterone": ("nmol/L", "ng/dL", TESTOSTERONE_NMOL_TO_NGDL),
    "Free Testosterone": ("nmol/L", "pg/mL", FREE_TESTOSTERONE_NMOL_TO_PGML),
    "Estradiol": ("pmol/L", "pg/mL", 1 / ESTRADIOL_PGML_TO_PMOL),
    "Dihydrotestosterone": ("nmol/L", "ng/dL", 28.9),
    "Total Cholesterol": ("mmol/L", "mg/dL", CHOLESTEROL_MMOL_TO_MGDL),
    "HDL Cholesterol": ("mmol/L", "mg/dL", CHOLESTEROL_MMOL_TO_MGDL),
    "LDL Cholesterol": ("mmol/L", "mg/dL", CHOLESTEROL_MMOL_TO_MGDL),
    "Non-HDL Cholesterol": ("mmol/L", "mg/dL", CHOLESTEROL_MMOL_TO_MGDL),
    "Triglycerides": ("mmol/L", "mg/dL", 88.57),
    "Apolipoprotein B": ("g/L", "mg/dL", 100.0),
    "Fasting Glucose": ("mmol/L", "mg/dL", 18.016),
    "Insulin": ("pmol/L", "uIU/mL", 1 / 6),
    "Creatinine": ("umol/L", "mg/dL", 1 / 88.42),
    "Urea": ("mmol/L", "mg/dL", 2.801),
    "Vitamin D": ("nmol/L", "ng/mL", 1 / 2.496),
    "Vitamin B12": ("pmol/L", "pg/mL", 1 / 0.7378),
    "Hemoglobin": ("mmol/L", "g/dL", 1 / HEMOGLOBIN_GPDL_TO_MMOLL),
    "MCHC": ("mmol/L", "g/dL", 1 / HEMOGLOBIN_GPDL_TO_MMOLL),
    "Albumin": ("g/L", "g/dL", 0.1),
    "PSA": ("ug/L", "ng/mL", 1.0),
    "Ferritin": ("ug/L", "ng/mL", 1.0),
}

# Vendor unit spellings (normalized token) -> (canonical unit, multiplier).
UNIT_NORMALIZATIONS = {
    "Testosterone": {"ng/ml": ("nmol/L", 100 / TESTOSTERONE_NMOL_TO_NGDL)},
    "Free Testosterone": {"pmol/l": ("nmol/L", 1 / 1000)},
    "Hemoglobin": {"g/l": ("mmol/L", HEMOGLOBIN_GPL_TO_MMOLL)},
    "MCHC": {"g/l": ("mmol/L", HEMOGLOBIN_GPL_TO_MMOLL)},
    "MCH": {"pg": ("fmol", MCH_PG_TO_FMOL), "fmol": ("fmol", 1.0)},
    "SHBG": {"nmol/l": ("nmol/L", 1.0)},
    "Insulin": {"mu/l": ("uIU/mL", 1.0), "miu/l": ("uIU/mL", 1.0), "uu/ml": ("uIU/mL", 1.0), "mu/ml": ("uIU/mL", 1.0)},
    "Vitamin D": {"ug/l": ("ng/mL", 1.0)},
    "PSA": {"ng/ml": ("ng/mL", 1.0), "ug/l": ("ug/L", 1.0)},
    "Ferritin": {"ng/ml": ("ng/mL", 1.0), "ug/l": ("ug/L", 1.0)},
    "ALT": {"iu/l": ("U/L", 1.0), "u/l": ("U/L", 1.0)},
    "AST": {"iu/l": ("U/L", 1.0), "u/l": ("U/L", 1.0)},
    "GGT": {"iu/l": ("U/L", 1.0), "u/l": ("U/L", 1.0)},
}

HEMATOCRIT_RATIO_UNITS = {"l/l", "ll", "ratio", "fraction"}
