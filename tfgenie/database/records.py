"""Final storage of completed sessions.

Writes the master record, the document set and the extracted key/value
pairs of a completed session in one transaction.
"""

import uuid

from sqlalchemy import text
from sqlalchemy.engine import Engine

from tfgenie.utils.logger import get_logger
from tfgenie.workflow.models import Document, MasterRecord

logger = get_logger(__name__)

_INSERT_MASTER_RECORD = text(
    "INSERT INTO TF_master_record "
    "(id, session_id, cif_number, lc_number, lifecycle, total_documents, "
    "processed_at, created_by) "
    "VALUES (:id, :session_id, :cif_number, :lc_number, :lifecycle, "
    ":total_documents, :processed_at, :created_by)"
)

_INSERT_DOCUMENT = text(
    "INSERT INTO TF_master_documentset "
    "(id, master_record_id, document_id, file_name, document_type, template_id) "
    "VALUES (:id, :master_record_id, :document_id, :file_name, :document_type, "
    ":template_id)"
)

_INSERT_KEY_VALUE = text(
    "INSERT INTO TF_key_value_pair "
    "(id, master_record_id, document_id, field_name, field_value, confidence, "
    "data_type) "
    "VALUES (:id, :master_record_id, :document_id, :field_name, :field_value, "
    ":confidence, :data_type)"
)


class MasterRecordWriter:
    """Persists completed sessions into the master record tables.

    Instances are callable so they can be passed as the ``record_writer``
    of :class:`~tfgenie.workflow.service.WorkflowService`.

    Args:
        engine: Engine bound to the provisioned TF Genie database.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def __call__(self, record: MasterRecord, documents: list[Document]) -> None:
        self.write(record, documents)

    def write(self, record: MasterRecord, documents: list[Document]) -> int:
        """Insert the record, its documents and their fields.

        Returns:
            Number of key/value pairs written.
        """
        pair_count = 0
        with self.engine.begin() as conn:
            conn.execute(
                _INSERT_MASTER_RECORD,
                {
                    "id": record.id,
                    "session_id": record.session_id,
                    "cif_number": record.cif_number,
                    "lc_number": record.lc_number,
                    "lifecycle": record.lifecycle,
                    "total_documents": record.total_documents,
                    "processed_at": record.processed_at,
                    "created_by": record.created_by,
                },
            )
            for document in documents:
                conn.execute(
                    _INSERT_DOCUMENT,
                    {
                        "id": str(uuid.uuid4()),
                        "master_record_id": record.id,
                        "document_id": document.id,
                        "file_name": document.file_name,
                        "document_type": (
                            document.ocr_result.document_type
                            if document.ocr_result
                            else None
                        ),
                        "template_id": document.cataloged_template_id,
                    },
                )
                for extracted in document.extracted_fields:
                    conn.execute(
                        _INSERT_KEY_VALUE,
                        {
                            "id": str(uuid.uuid4()),
                            "master_record_id": record.id,
                            "document_id": document.id,
                            "field_name": extracted.field_name,
                            "field_value": extracted.field_value,
                            "confidence": extracted.confidence,
                            "data_type": extracted.data_type,
                        },
                    )
                    pair_count += 1

        logger.info(
            "Stored master record %s with %d documents and %d fields",
            record.id,
            len(documents),
            pair_count,
        )
        return pair_count
