"""
AWS Textract expense analysis provider

Runs AnalyzeExpense directly on the uploaded S3 object (no download) and
hands the raw response to the expense parser.
"""
from typing import Any, Dict, Optional

import boto3
import structlog
from botocore.exceptions import BotoCoreError, ClientError

from packages.common.errors import ExtractionError
from packages.common.schemas.invoice import InvoiceEvent, SourceObject
from packages.parsers.expense_parser import parse_expense_response

logger = structlog.get_logger()


class TextractExpenseProvider:
    """
    AWS Textract AnalyzeExpense provider.

    Extracts vendor, totals, dates and line items from receipts and invoices
    stored in S3.
    """

    def __init__(self, aws_region: str = "us-east-1", client: Optional[Any] = None):
        """
        Initialize Textract provider.

        Args:
            aws_region: AWS region for Textract API
            client: Pre-built boto3 textract client (tests, custom sessions)
        """
        self.textract = client or boto3.client('textract', region_name=aws_region)
        self.region = aws_region
        logger.info("textract_expense_provider_initialized", region=aws_region)

    def analyze(self, bucket_name: str, object_key: str) -> Dict[str, Any]:
        """
        Call AnalyzeExpense on an S3 object.

        Args:
            bucket_name: Upload bucket
            object_key: Object key (e.g. "<fileId>.jpg")

        Returns:
            Raw AnalyzeExpense response

        Raises:
            ExtractionError: If the Textract call fails
        """
        logger.info("calling_textract_analyze_expense",
                   bucket=bucket_name,
                   key=object_key)

        try:
            response = self.textract.analyze_expense(
                Document={'S3Object': {'Bucket': bucket_name, 'Name': object_key}}
            )
        except (ClientError, BotoCoreError) as e:
            logger.error("textract_analyze_expense_failed",
                        bucket=bucket_name,
                        key=object_key,
                        error=str(e),
                        exc_info=True)
            raise ExtractionError(f"Textract expense analysis failed: {e}") from e

        logger.info("textract_analyze_expense_complete",
                   bucket=bucket_name,
                   key=object_key,
                   documents=len(response.get('ExpenseDocuments', [])))
        return response

    def extract_invoice(self, source_object: SourceObject) -> InvoiceEvent:
        """
        Extraction stage: analyze the uploaded object and normalize its fields.

        Returns:
            InvoiceEvent carrying the source object and extracted data
        """
        response = self.analyze(source_object.bucket_name, source_object.object_key)
        return InvoiceEvent(
            source_object=source_object,
            extracted_data=parse_expense_response(response),
        )
