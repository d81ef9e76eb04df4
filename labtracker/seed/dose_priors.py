DEFAULT_DOSE_RANGE = (60, 220)

_TESTOSTERONE_EVIDENCE = [{
    "citation": "Bhasin et al., 2001",
    "study_type": "Randomized dose-response trial",
    "relevance": "Serum testosterone rose with dose in controlled settings.",
    "quality": "high",
}]
_FREE_T_EVIDENCE = [{
    "citation": "TRT kinetics review",
    "study_type": "Meta-analysis",
    "relevance": "Free testosterone typically increases with androgen exposure.",
    "quality": "medium",
}]
_ESTRADIOL_EVIDENCE = [{
    "citation": "Aromatization studies in TRT",
    "study_type": "Observational + mechanistic",
    "relevance": "Estradiol often trends with testosterone exposure.",
    "quality": "medium",
}]
_HEMATOCRIT_EVIDENCE = [{
    "citation": "TRT erythrocytosis cohorts",
    "study_type": "Observational cohorts",
    "relevance": "Higher androgen exposure can increase hematocrit in susceptible users.",
    "quality": "medium",
}]
_APOB_EVIDENCE = [{
    "citation": "Androgen-lipoprotein reviews",
    "study_type": "Systematic review",
    "relevance": "ApoB may increase on some androgen protocols.",
    "quality": "medium",
}]
_LDL_EVIDENCE = [{
    "citation": "Androgen lipid cohorts",
    "study_type": "Observational cohorts",
    "relevance": "LDL response is heterogeneous but can be dose-related.",
    "quality": "medium",
}]


LOCAL_DOSE_PRIORS = [
    {"marker": "Testosterone", "unit_system": "eu", "unit": "nmol/L", "slope_per_mg": 0.1, "sigma": 4.2,
     "evidence": _TESTOSTERONE_EVIDENCE},
    {"marker": "Testosterone", "unit_system": "us", "unit": "ng/dL", "slope_per_mg": 2.9, "sigma": 120,
     "evidence": _TESTOSTERONE_EVIDENCE},
    {"marker": "Free Testosterone", "unit_system": "eu", "unit": "nmol/L", "slope_per_mg": 0.0012, "sigma": 0.08,
     "evidence": _FREE_T_EVIDENCE},
    {"marker": "Free Testosterone", "unit_system": "us", "unit": "pg/mL", "slope_per_mg": 0.36, "sigma": 18,
     "evidence": _FREE_T_EVIDENCE},
    {"marker": "Estradiol", "unit_system": "eu", "unit": "pmol/L", "slope_per_mg": 0.95, "sigma": 35,
     "evidence": _ESTRADIOL_EVIDENCE},
    {"marker": "Estradiol", "unit_system": "us", "unit": "pg/mL", "slope_per_mg": 0.26, "sigma": 10,
     "evidence": _ESTRADIOL_EVIDENCE},
    {"marker": "Hematocrit", "unit_system": "eu", "unit": "%", "slope_per_mg": 0.015, "sigma": 1.3,
     "evidence": _HEMATOCRIT_EVIDENCE},
    {"marker": "Hematocrit", "unit_system": "us", "unit": "%", "slope_per_mg": 0.015, "sigma": 1.3,
     "evidence": _HEMATOCRIT_EVIDENCE},
    {"marker": "Apolipoprotein B", "unit_system": "eu", "unit": "g/L", "slope_per_mg": 0.00014, "sigma": 0.11,
     "evidence": _APOB_EVIDENCE},
    {"marker": "Apolipoprotein B", "unit_system": "us", "unit": "mg/dL", "slope_per_mg": 0.014, "sigma": 11,
     "evidence": _APOB_EVIDENCE},
    {"marker": "LDL Cholesterol", "unit_system": "eu", "unit": "mmol/L", "slope_per_mg": 0.0005, "sigma": 0.2,
     "evidence": _LDL_EVIDENCE},
    {"marker": "LDL Cholesterol", "unit_system": "us", "unit": "mg/dL", "slope_per_mg": 0.02, "sigma": 8,
     "evidence": _LDL_EVIDENCE},
]
