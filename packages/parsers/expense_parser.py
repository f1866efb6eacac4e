"""
Expense response parser - Textract AnalyzeExpense -> ExtractedDocument

Only the first expense document and its first line-item group are read.
A response without documents is not an error at this stage: it yields an
empty document and the later stages decide what that means.
"""
from typing import Any, Dict, Iterable, List

import structlog

from packages.common.schemas.invoice import ExtractedDocument

logger = structlog.get_logger()


def _fields_to_mapping(fields: Iterable[Dict[str, Any]]) -> Dict[str, str]:
    """
    Build {type: detected text} from a Textract field list.

    Fields without a type or without detected text are skipped.
    Repeated types overwrite earlier ones (last wins).
    """
    mapping: Dict[str, str] = {}
    for field in fields or []:
        field_type = (field.get("Type") or {}).get("Text")
        field_value = (field.get("ValueDetection") or {}).get("Text")
        if field_type and field_value is not None:
            mapping[field_type] = field_value
    return mapping


def parse_expense_response(response: Dict[str, Any]) -> ExtractedDocument:
    """
    Normalize an AnalyzeExpense response.

    Args:
        response: Raw response dict from textract.analyze_expense

    Returns:
        ExtractedDocument with summary fields and ordered line items
    """
    documents = response.get("ExpenseDocuments") or []
    if not documents:
        logger.warning("expense_response_empty")
        return ExtractedDocument()

    expense_doc = documents[0]
    summary = _fields_to_mapping(expense_doc.get("SummaryFields"))

    line_items: List[Dict[str, str]] = []
    groups = expense_doc.get("LineItemGroups") or []
    if groups:
        for item in groups[0].get("LineItems") or []:
            line_items.append(_fields_to_mapping(item.get("LineItemExpenseFields")))

    logger.info("expense_response_parsed",
               documents=len(documents),
               summary_fields=len(summary),
               line_items=len(line_items))

    return ExtractedDocument(summary=summary, line_items=line_items)
