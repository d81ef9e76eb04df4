HORMONES = "Hormones"
HEMATOLOGY = "Hematology"
LIPIDS = "Lipids"
INFLAMMATION = "Inflammation"

# Physiological response delay (days) before a protocol change shows up in a marker.
CATEGORY_LAG_DAYS = {
    HORMONES: 10,
    INFLAMMATION: 14,
    HEMATOLOGY: 21,
    LIPIDS: 28,
}
DEFAULT_LAG_DAYS = 21
DEFAULT_CLINICAL_WEIGHT = 55


MARKERS = [
    {"name": "Testosterone", "category": HORMONES, "weight": 95,
     "aliases": ["TESTOSTERONE", "TESTOSTERON", "TOTAL TESTOSTERONE", "TESTOSTERONE TOTAL", "TESTOSTERONE SERUM"]},
    {"name": "Free Testosterone", "category": HORMONES, "weight": 85,
     "aliases": ["FREE TESTOSTERONE", "VRIJ TESTOSTERON", "CALCULATED FREE TESTOSTERONE"]},
    {"name": "Bioavailable Testosterone", "category": HORMONES, "weight": 70,
     "aliases": ["BIOAVAILABLE TESTOSTERONE", "BAT"]},
    {"name": "Estradiol", "category": HORMONES, "weight": 88,
     "aliases": ["ESTRADIOL", "OESTRADIOL", "E2", "17 BETA ESTRADIOL", "ESTRADIOL SENSITIVE"]},
    {"name": "SHBG", "category": HORMONES, "weight": 70,
     "aliases": ["SHBG", "SEX HORMONE BINDING GLOBULIN", "SEKSHORMOON BINDEND GLOBULINE"]},
    {"name": "Dihydrotestosterone", "category": HORMONES, "weight": 60,
     "aliases": ["DHT", "DIHYDROTESTOSTERONE", "DIHYDROTESTOSTERON"]},
    {"name": "LH", "category": HORMONES, "weight": 55, "aliases": ["LH", "LUTEINIZING HORMONE"]},
    {"name": "FSH", "category": HORMONES, "weight": 55, "aliases": ["FSH", "FOLLICLE STIMULATING HORMONE"]},
    {"name": "Prolactin", "category": HORMONES, "weight": 65, "aliases": ["PROLACTIN", "PROLACTINE", "PRL"]},
    {"name": "T/E2 Ratio", "category": HORMONES, "weight": 70,
     "aliases": ["T E2 RATIO", "TESTOSTERONE E2 RATIO", "TESTOSTERONE ESTRADIOL RATIO"]},
    {"name": "Free Androgen Index", "category": HORMONES, "weight": 72, "aliases": ["FAI", "FREE ANDROGEN INDEX"]},
    {"name": "Albumin", "category": "Protein", "weight": 45, "aliases": ["ALBUMIN", "ALBUMINE", "SERUM ALBUMIN"]},
    {"name": "Hematocrit", "category": HEMATOLOGY, "weight": 90,
     "aliases": ["HEMATOCRIT", "HEMATOCRIET", "HAEMATOCRIT", "HCT"]},
    {"name": "Hemoglobin", "category": HEMATOLOGY, "weight": 80,
     "aliases": ["HEMOGLOBIN", "HEMOGLOBINE", "HAEMOGLOBIN", "HGB", "HB"]},
    {"name": "Red Blood Cells", "category": HEMATOLOGY, "weight": 65,
     "aliases": ["RBC", "RED BLOOD CELLS", "ERYTROCYTEN", "ERYTHROCYTES"]},
    {"name": "MCV", "category": HEMATOLOGY, "aliases": ["MCV", "MEAN CORPUSCULAR VOLUME"]},
    {"name": "MCH", "category": HEMATOLOGY, "aliases": ["MCH", "MEAN CORPUSCULAR HEMOGLOBIN"]},
    {"name": "MCHC", "category": HEMATOLOGY, "aliases": ["MCHC", "MEAN CORPUSCULAR HEMOGLOBIN CONCENTRATION"]},
    {"name": "RDW-CV", "category": HEMATOLOGY, "aliases": ["RDW", "RDW CV", "RED CELL DISTRIBUTION WIDTH"]},
    {"name": "Platelets", "category": HEMATOLOGY, "aliases": ["PLATELETS", "PLATELET", "PLT", "TROMBOCYTEN"]},
    {"name": "White Blood Cells", "category": HEMATOLOGY,
     "aliases": ["WBC", "WHITE BLOOD CELLS", "LEUKOCYTEN", "LEUCOCYTEN", "LEUKOCYTES"]},
    {"name": "Neutrophils Abs.", "category": HEMATOLOGY, "aliases": ["NEUTROPHILS ABS", "ABSOLUTE NEUTROPHILS", "ANC"]},
    {"name": "Lymphocytes Abs.", "category": HEMATOLOGY, "aliases": ["LYMPHOCYTES ABS", "ABSOLUTE LYMPHOCYTES"]},
    {"name": "Monocytes Abs.", "category": HEMATOLOGY, "aliases": ["MONOCYTES ABS", "ABSOLUTE MONOCYTES"]},
    {"name": "Eosinophils Abs.", "category": HEMATOLOGY, "aliases": ["EOSINOPHILS ABS", "ABSOLUTE EOSINOPHILS"]},
    {"name": "Basophils Abs.", "category": HEMATOLOGY, "aliases": ["BASOPHILS ABS", "ABSOLUTE BASOPHILS"]},
    {"name": "Total Cholesterol", "category": LIPIDS, "weight": 65,
     "aliases": ["CHOLESTEROL", "TOTAL CHOLESTEROL", "CHOLESTEROL TOTAAL"]},
    {"name": "HDL Cholesterol", "category": LIPIDS, "weight": 65,
     "aliases": ["HDL", "HDL CHOLESTEROL", "HIGH DENSITY LIPOPROTEIN"]},
    {"name": "LDL Cholesterol", "category": LIPIDS, "weight": 85,
     "aliases": ["LDL", "LDL CHOLESTEROL", "LDL CALCULATED", "LOW DENSITY LIPOPROTEIN"]},
    {"name": "Non-HDL Cholesterol", "category": LIPIDS, "weight": 80, "aliases": ["NON HDL", "NON HDL CHOLESTEROL"]},
    {"name": "Triglycerides", "category": LIPIDS, "weight": 60, "aliases": ["TRIGLYCERIDES", "TRIGLYCERIDEN", "TG"]},
    {"name": "Apolipoprotein B", "category": LIPIDS, "weight": 90, "aliases": ["APOB", "APO B", "APO B100", "APOLIPOPROTEIN B"]},
    {"name": "Cholesterol/HDL Ratio", "category": LIPIDS, "aliases": ["CHOLESTEROL HDL RATIO", "CHOL HDL RATIO"]},
    {"name": "LDL/HDL Ratio", "category": LIPIDS, "aliases": ["LDL HDL RATIO", "LDL HDL CHOLESTEROL RATIO"]},
    {"name": "Fasting Glucose", "category": "Metabolic", "weight": 60,
     "aliases": ["GLUCOSE", "FASTING GLUCOSE", "GLUCOSE FASTING", "GLUCOSE NUCHTER", "GLUCOSE PLASMA"]},
    {"name": "Insulin", "category": "Metabolic", "weight": 55, "aliases": ["INSULIN", "INSULINE"]},
    {"name": "HOMA-IR", "category": "Metabolic", "weight": 60, "aliases": ["HOMA", "HOMA IR"]},
    {"name": "HbA1c", "category": "Metabolic", "weight": 60, "aliases": ["HBA1C", "A1C", "HEMOGLOBIN A1C"]},
    {"name": "CRP", "category": INFLAMMATION, "weight": 60,
     "aliases": ["CRP", "C REACTIVE PROTEIN", "HS CRP", "HSCRP"]},
    {"name": "Homocysteine", "category": INFLAMMATION, "aliases": ["HOMOCYSTEINE", "HOMOCYSTEINE PLASMA"]},
    {"name": "ALT", "category": "Liver", "weight": 60, "aliases": ["ALT", "ALAT", "SGPT"]},
    {"name": "AST", "category": "Liver", "aliases": ["AST", "ASAT", "SGOT"]},
    {"name": "GGT", "category": "Liver", "aliases": ["GGT", "GAMMA GT", "GAMMA GLUTAMYLTRANSFERASE"]},
    {"name": "Creatinine", "category": "Kidney", "weight": 60, "aliases": ["CREATININE", "KREATININE", "SERUM CREATININE"]},
    {"name": "eGFR", "category": "Kidney", "weight": 60, "aliases": ["EGFR", "ESTIMATED GFR", "CKD EPI"]},
    {"name": "Urea", "category": "Kidney", "aliases": ["UREA", "UREUM", "BUN"]},
    {"name": "PSA", "category": "Prostate", "weight": 85, "aliases": ["PSA", "PROSTATE SPECIFIC ANTIGEN", "TOTAL PSA"]},
    {"name": "Ferritin", "category": "Iron", "weight": 60, "aliases": ["FERRITIN", "FERRITINE"]},
    {"name": "Transferrin", "category": "Iron", "aliases": ["TRANSFERRIN", "TRANSFERRINE"]},
    {"name": "Vitamin D", "category": "Vitamins", "aliases": ["VITAMIN D", "25 OH VITAMIN D", "VITAMIN D D3 D2 OH"]},
    {"name": "Vitamin B12", "category": "Vitamins", "aliases": ["B12", "VITAMIN B12", "VITAMINE B12", "VIT B12"]},
    {"name": "Folate", "category": "Vitamins", "aliases": ["FOLATE", "FOLIC ACID", "FOLIUMZUUR"]},
    {"name": "TSH", "category": "Thyroid", "weight": 60, "aliases": ["TSH", "THYROTROPIN", "THYROID STIMULATING HORMONE"]},
    {"name": "Free T4", "category": "Thyroid", "aliases": ["FREE T4", "FT4", "VRIJ T4"]},
    {"name": "Free T3", "category": "Thyroid", "aliases": ["FREE T3", "FT3", "VRIJ T3"]},
]


# EU-unit target zones; converted to the requested unit system on lookup.
TRT_TARGET_ZONES = {
    "Testosterone": (18, 35, "nmol/L"),
    "Free Testosterone": (0.3, 0.75, "nmol/L"),
    "Estradiol": (70, 150, "pmol/L"),
    "Hematocrit": (42, 50, "%"),
    "SHBG": (15, 40, "nmol/L"),
    "Albumin": (40, 50, "g/L"),
    "Dihydrotestosterone": (1.0, 3.5, "nmol/L"),
    "Vitamin D": (75, 125, "nmol/L"),
    "TSH": (0.4, 4.0, "mIU/L"),
    "Creatinine": (65, 110, "umol/L"),
    "CRP": (0, 5, "mg/L"),
    "Total Cholesterol": (3.6, 5.2, "mmol/L"),
    "T/E2 Ratio": (120, 260, "ratio"),
    "LDL/HDL Ratio": (1.2, 3.0, "ratio"),
    "Non-HDL Cholesterol": (1.8, 3.4, "mmol/L"),
    "Triglycerides": (0.5, 1.7, "mmol/L"),
    "Fasting Glucose": (4.0, 5.6, "mmol/L"),
    "Ferritin": (40, 200, "ug/L"),
    "PSA": (0, 3.0, "ug/L"),
    "Hemoglobin": (8.5, 11.0, "mmol/L"),
    "Free Androgen Index": (30, 120, "index"),
    "HDL Cholesterol": (1.0, 2.2, "mmol/L"),
    "LDL Cholesterol": (1.6, 2.8, "mmol/L"),
    "Apolipoprotein B": (0.5, 0.9, "g/L"),
    "Insulin": (14, 104, "pmol/L"),
    "HOMA-IR": (0.5, 2.5, "index"),
}

LONGEVITY_TARGET_ZONES = {
    "Testosterone": (14, 28, "nmol/L"),
    "Free Testosterone": (0.25, 0.6, "nmol/L"),
    "Estradiol": (60, 130, "pmol/L"),
    "Hematocrit": (40, 48, "%"),
    "SHBG": (20, 45, "nmol/L"),
    "Albumin": (43, 49, "g/L"),
    "Dihydrotestosterone": (1.2, 2.8, "nmol/L"),
    "Vitamin D": (75, 125, "nmol/L"),
    "TSH": (0.5, 2.5, "mIU/L"),
    "Creatinine": (70, 105, "umol/L"),
    "CRP": (0.2, 1.5, "mg/L"),
    "Total Cholesterol": (3.6, 4.9, "mmol/L"),
    "T/E2 Ratio": (140, 320, "ratio"),
    "LDL/HDL Ratio": (1.1, 2.5, "ratio"),
    "Non-HDL Cholesterol": (1.8, 2.8, "mmol/L"),
    "Triglycerides": (0.5, 1.2, "mmol/L"),
    "Fasting Glucose": (4.2, 5.2, "mmol/L"),
    "Ferritin": (50, 150, "ug/L"),
    "PSA": (0, 2.0, "ug/L"),
    "Hemoglobin": (8.7, 10.5, "mmol/L"),
    "Free Androgen Index": (40, 90, "index"),
    "HDL Cholesterol": (1.2, 2.2, "mmol/L"),
    "LDL Cholesterol": (1.4, 2.4, "mmol/L"),
    "Apolipoprotein B": (0.5, 0.8, "g/L"),
    "Insulin": (14, 56, "pmol/L"),
    "HOMA-IR": (0.5, 1.5, "index"),
}
