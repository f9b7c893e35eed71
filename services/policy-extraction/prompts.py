"""Instruction sent with the page images of a homeowners declaration page.

Keys must match models.POLICY_FIELDS and models.COVERAGE_FIELDS.
"""

_JSON_SUFFIX = """

CRITICAL OUTPUT RULES:
- Return ONLY a single valid JSON object. No other text before or after.
- Do NOT include any explanation or markdown formatting.
- Do NOT wrap in code fences. Just raw JSON."""

DECLARATION_PAGE_PROMPT = """You are an expert insurance document analyzer.
The images are the pages of one homeowners insurance policy document (declaration page),
in page order. Extract the policy details below and return them as a JSON object.

For each field, provide:
- value: the extracted value (string for text and dates, number for dollar amounts, null if not found)
- confidence: your confidence in the extraction accuracy, from 0.0 to 1.0

Use EXACTLY these keys:

{
  "carrier": { "value": "Allstate", "confidence": 0.95 },
  "effectiveDate": { "value": "2026-01-01", "confidence": 0.90 },
  "expirationDate": { "value": "2027-01-01", "confidence": 0.90 },
  "premium": { "value": 1840, "confidence": 0.90 },
  "dwelling": { "value": 378380, "confidence": 0.95 },
  "otherStructures": { "value": 72000, "confidence": 0.90 },
  "personalProperty": { "value": 138000, "confidence": 0.90 },
  "lossOfUse": { "value": 50000, "confidence": 0.85 },
  "liability": { "value": 300000, "confidence": 0.80 },
  "medPay": { "value": 5000, "confidence": 0.85 },
  "waterBackup": { "value": 10000, "confidence": 0.75 },
  "earthquake": { "value": null, "confidence": 0.0 },
  "moldPropertyDamage": { "value": null, "confidence": 0.0 },
  "moldLiability": { "value": null, "confidence": 0.0 },
  "deductible": { "value": 1000, "confidence": 0.95 },
  "notes": []
}

Important:
- Dates in YYYY-MM-DD format
- Dollar amounts as plain numbers without "$" or commas
- premium is the total annual premium
- Fields may appear on different pages; combine them into one object
- If a coverage is explicitly excluded, set its value to null and add a note such as "EXCLUDED: Earthquake"
- If you find unusually low amounts (e.g., liability below $100,000 for an HO3 policy), add a note""" + _JSON_SUFFIX
