from brokerdesk.platform.integrity import commit_or_conflict
from brokerdesk.platform.numbering import SequenceCodec, claim_codec, next_sequence_value, ticket_codec
from brokerdesk.platform.pagination import PageMeta, PageRequest, get_page_request, paginate

__all__ = [
    "PageMeta",
    "PageRequest",
    "SequenceCodec",
    "claim_codec",
    "commit_or_conflict",
    "get_page_request",
    "next_sequence_value",
    "paginate",
    "ticket_codec",
]
