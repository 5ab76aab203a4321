"""
Signature and customer comment block.

Signatures can arrive from several places in a request. They are resolved
once, into a SignatureSet, using a fixed precedence per role:

    engineer / manager: top-level request field, then room.customFields
    customer:           params.signature
    customer comment:   params.ratings.comment

Single-character strings are placeholders some mobile clients send for
"not signed" and never count as an image.
"""

import html
from dataclasses import dataclass
from typing import Optional

from fsr_report.report.types import ReportRequest

MIN_SIGNATURE_LENGTH = 2


@dataclass(frozen=True)
class SignatureSet:
    """Resolved signature images and customer comment for one report."""

    customer: Optional[str] = None
    engineer: Optional[str] = None
    manager: Optional[str] = None
    customer_comment: Optional[str] = None


@dataclass(frozen=True)
class SignatureBlock:
    """Markup for the signatureHeader and signatureContent template nodes."""

    header_html: str
    content_html: str


def usable_signature(value: Optional[str]) -> Optional[str]:
    """Return the value if it can be an image payload, else None."""
    if isinstance(value, str) and len(value) >= MIN_SIGNATURE_LENGTH:
        return value
    return None


def _first_usable(*candidates: Optional[str]) -> Optional[str]:
    for candidate in candidates:
        signature = usable_signature(candidate)
        if signature:
            return signature
    return None


def resolve_signatures(request: ReportRequest) -> SignatureSet:
    """Apply the precedence rules to a request."""
    custom_fields = request.room.custom_fields if request.room else None
    params = request.params

    comment = None
    if params and params.ratings and params.ratings.comment:
        comment = params.ratings.comment

    return SignatureSet(
        customer=usable_signature(params.signature) if params else None,
        engineer=_first_usable(
            request.engineer_signature,
            custom_fields.engineer_signature if custom_fields else None,
        ),
        manager=_first_usable(
            request.manager_signature,
            custom_fields.manager_signature if custom_fields else None,
        ),
        customer_comment=comment,
    )


def _signature_column(caption: str, image: Optional[str]) -> str:
    if image:
        body = f'<img src="{html.escape(image, quote=True)}" alt="{caption}" class="signatureImage" />'
    else:
        body = '<div class="signatureImage"></div>'
    return (
        '<div class="signatureColumn">'
        f"{body}"
        f'<div class="signatureCaption">{caption}</div>'
        "</div>"
    )


def compose_signature_block(signatures: SignatureSet) -> SignatureBlock:
    """
    Render the signature block.

    The customer and engineer columns are always present; the manager column
    only appears when a manager actually signed.
    """
    comment = html.escape(signatures.customer_comment) if signatures.customer_comment else ""
    header_html = (
        '<div class="customerComment">'
        "<strong>Customer's Comment:</strong> "
        f'<span class="customerCommentText">{comment}</span>'
        "</div>"
    )

    columns = [
        _signature_column("Customer Signature", signatures.customer),
        _signature_column("Engineer Signature", signatures.engineer),
    ]
    if signatures.manager:
        columns.append(_signature_column("Signature of Manager", signatures.manager))
    content_html = f'<div class="signatureRow">{"".join(columns)}</div>'

    return SignatureBlock(header_html=header_html, content_html=content_html)


def build_signature_block(request: ReportRequest) -> SignatureBlock:
    """Resolve and render in one step."""
    return compose_signature_block(resolve_signatures(request))
