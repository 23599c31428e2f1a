#!/usr/bin/env python3
# detail.py
"""
Detail pages: one primary record plus the collections scoped to it.
"""
import logging
from typing import List, Optional

from pydantic import ValidationError

import mutations
import queries
from dispatcher import DispatchBusy, MutationDispatcher
from graphql_client import ApiError, AuthError
from models import (
    AmcProposal, Customer, EmailRecord, Invoice, ProposalDocument, ProposalStatus, parse_page,
)

logger = logging.getLogger(__name__)

UNREADABLE = "Unexpected response from the server"


def _parse(record_cls, data):
    """The mutation already succeeded; a reply we cannot read is only logged."""
    if not data:
        return None
    try:
        return record_cls.model_validate(data)
    except ValidationError as e:
        logger.warning("malformed %s reply: %s", record_cls.__name__, e)
        return None


class DetailView:
    document: str = ""
    root: str = ""
    record_cls = None

    def __init__(self, client, record_id: int):
        self.client = client
        self.record_id = record_id
        self.record = None
        self.not_found = False
        self.error: Optional[str] = None
        self.message: Optional[str] = None
        self.dispatcher = MutationDispatcher()

    def reload(self):
        try:
            data = self.client.fetch(self.document, self.root, {"id": self.record_id})
            self.record = self.record_cls.model_validate(data) if data else None
        except AuthError:
            raise
        except ApiError as e:
            logger.warning("loading %s %s failed: %s", self.root, self.record_id, e.message)
            self.record = None
        except ValidationError as e:
            # an unreadable record is shown as missing
            logger.warning("malformed %s %s: %s", self.root, self.record_id, e)
            self.record = None
        self.not_found = self.record is None
        return self.record

    def load(self):
        self.reload()
        return self

    def _dispatch(self, document: str, variables: dict, success: str) -> Optional[dict]:
        self.error = None
        try:
            data = self.dispatcher.run(self.client, document, variables)
        except AuthError:
            raise
        except (ApiError, DispatchBusy) as e:
            self.error = str(e) or "An error occurred"
            return None
        self.message = success
        return data


class CustomerDetail(DetailView):
    document = queries.GET_CUSTOMER
    root = "customer"
    record_cls = Customer


class InvoiceDetail(DetailView):
    document = queries.GET_INVOICE
    root = "invoice"
    record_cls = Invoice


class ProposalDetail(DetailView):
    """
    Proposal with its items, generated documents and email records.

    Documents and email records are matched by proposal number, so they are
    only fetched once the proposal itself has loaded.
    """

    document = queries.GET_AMC_PROPOSAL
    root = "amcProposal"
    record_cls = AmcProposal

    def __init__(self, client, record_id: int, side_limit: int = 100):
        super().__init__(client, record_id)
        self.side_limit = side_limit
        self.documents: List[ProposalDocument] = []
        self.email_records: List[EmailRecord] = []
        self.documents_error: Optional[str] = None
        self.email_records_error: Optional[str] = None

    @property
    def proposal(self) -> Optional[AmcProposal]:
        return self.record

    @property
    def proposalno(self) -> Optional[str]:
        return self.record.proposalno if self.record else None

    @property
    def doclink(self) -> str:
        return (self.record.doclink or "") if self.record else ""

    @property
    def default_recipient(self) -> str:
        if self.record and self.record.customer and self.record.customer.email:
            return self.record.customer.email
        return ""

    def load(self):
        self.reload()
        self.load_documents()
        self.load_email_records()
        return self

    def _side(self, document: str, root: str, record_cls):
        if not self.proposalno:
            return [], None
        try:
            payload = self.client.fetch(document, root, {"page": 1, "limit": self.side_limit,
                                                         "proposalno": self.proposalno})
            return parse_page(payload, record_cls).rows, None
        except AuthError:
            raise
        except ApiError as e:
            return [], e.message
        except ValidationError as e:
            logger.warning("malformed %s: %s", root, e)
            return [], UNREADABLE

    def load_documents(self) -> None:
        self.documents, self.documents_error = self._side(
            queries.GET_PROPOSAL_DOCUMENTS, "proposalDocuments", ProposalDocument)

    def load_email_records(self) -> None:
        self.email_records, self.email_records_error = self._side(
            queries.GET_EMAIL_RECORDS, "emailRecords", EmailRecord)

    def can_send_email(self, recipient: Optional[str]) -> bool:
        return bool((recipient or "").strip()) and bool(self.doclink.strip())

    def generate_document(self) -> Optional[ProposalDocument]:
        data = self._dispatch(mutations.GENERATE_PROPOSAL_DOCUMENT, {"proposalId": self.record_id},
                              "Proposal document generated successfully!")
        if data is None:
            return None
        # a new document was appended and doclink may have moved
        self.reload()
        self.load_documents()
        document = data.get("generateProposalDocument")
        return _parse(ProposalDocument, document)

    def send_email(self, recipient: str, message: Optional[str] = None) -> Optional[EmailRecord]:
        recipient = (recipient or "").strip()
        if not self.can_send_email(recipient):
            self.error = ("Generate the proposal document before sending it"
                          if not self.doclink else "Recipient email is required")
            return None
        payload = {"proposalId": self.record_id, "email": recipient}
        if message and message.strip():
            payload["message"] = message.strip()
        data = self._dispatch(mutations.SEND_PROPOSAL_EMAIL, {"input": payload}, "Email sent successfully!")
        if data is None:
            return None
        self.reload()
        self.load_email_records()
        record = data.get("sendProposalEmail")
        return _parse(EmailRecord, record)

    def change_status(self, status: str) -> bool:
        try:
            status = ProposalStatus(status).value
        except ValueError:
            self.error = "Select a valid status"
            return False
        data = self._dispatch(mutations.UPDATE_AMC_PROPOSAL,
                              {"id": self.record_id, "input": {"proposalstatus": status}},
                              "Status updated successfully")
        if data is None:
            return False
        self.reload()
        return True
