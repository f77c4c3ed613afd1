# Overview: Per-outlet document numbering (sale invoice numbers).

from __future__ import annotations

from ..extensions import db
from ..models import DocumentSequence
from .concurrency import lock_for_update


def next_document_number(
    *,
    outlet_id: int,
    document_type: str,
    prefix: str,
    pad: int = 6,
) -> str:
    """
    Allocate the next document number for an outlet/type.

    Must run inside the caller's unit of work: the sequence row is locked and
    the increment commits or rolls back together with the document, so
    aborted checkouts do not burn numbers. A concurrent first allocation for
    the same outlet/type fails on the unique constraint and aborts the unit
    of work as a conflict.
    """
    seq = lock_for_update(
        db.session.query(DocumentSequence).filter_by(outlet_id=outlet_id, document_type=document_type)
    ).first()
    if seq is None:
        seq = DocumentSequence(outlet_id=outlet_id, document_type=document_type, next_number=1)
        db.session.add(seq)

    number = seq.next_number
    seq.next_number = number + 1
    db.session.flush()
    return f"{prefix}-{str(number).zfill(pad)}"
