"""
System and user prompts for LLM transaction extraction.
"""
import json
from typing import Dict, List

from core.normalize import PAYMENT_METHODS

# Document text beyond this is cut off before prompting
MAX_DOCUMENT_CHARS = 30000


def build_system_prompt() -> str:
    """
    Build the fixed extraction instructions.

    Returns:
        Complete system prompt string
    """
    methods = " or ".join(f"'{m}'" for m in PAYMENT_METHODS)

    prompt = f"""You extract financial transactions from the text of receipts, bills and bank statements.

Extract all financial transactions with these fields:
- date
- party
- amount
- type ("income" or "expenditure")
- paymentMethod ({methods}) strictly use this only and choose the most accurate
- category (choose the most accurate)

Special Instructions:
1. The text may either be a **bank statement** (with multiple transactions) or a **bill/receipt** (a single consolidated payment).
2. If it's a **bill or receipt**, consider it as a **single payment**, and extract it as one transaction only.
3. If it's a **bank statement**, extract **each transaction separately**.
4. Do not include "Uncategorized" as a category. Choose the most accurate one from the provided lists.
5. Match the category based on the nature of the transaction, using the income list for "income"
   and the expenditure list for "expenditure".
6. "amount" is a positive number without currency symbols.

Respond ONLY with a JSON object in this format:
{{
  "transactions": [
    {{
      "date": "01/01/2024",
      "party": "Amazon",
      "paymentMethod": "card",
      "amount": 1200.00,
      "type": "expenditure",
      "category": "Shopping"
    }},
    {{
      "date": "03/03/2024",
      "party": "Biryani Hub",
      "paymentMethod": "upi",
      "amount": 1500.00,
      "type": "expenditure",
      "category": "Food"
    }}
  ]
}}
"""
    return prompt


def build_user_message(text: str, categories: Dict[str, List[str]]) -> str:
    """
    Build user message with the category lists and the document text.

    Args:
        text: Raw text extracted from the document
        categories: {"income": [...], "expenditure": [...]} user category names

    Returns:
        Formatted user message string
    """
    document = text if len(text) <= MAX_DOCUMENT_CHARS else text[:MAX_DOCUMENT_CHARS]

    message_parts = [
        f"Income categories: {json.dumps(categories.get('income', []))}",
        f"Expenditure categories: {json.dumps(categories.get('expenditure', []))}",
        "",
        "Text:",
        f'"""{document}"""',
    ]
    return "\n".join(message_parts)
