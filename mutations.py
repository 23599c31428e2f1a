#!/usr/bin/env python3
# mutations.py
"""GraphQL write documents. Each returns the changed record (or a bool for deletes)."""
from queries import (
    CUSTOMER_FIELDS, DOCUMENT_FIELDS, EMAIL_RECORD_FIELDS, INVOICE_FIELDS, INVOICE_ITEM_FIELDS,
    LOCATION_FIELDS, MAIL_SETUP_FIELDS, NAMED_FIELDS, PRODUCT_FIELDS, PROPOSAL_FIELDS,
    PROPOSAL_ITEM_FIELDS, USER_FIELDS,
)

LOGIN = f"""
mutation Login($email: String!, $password: String!) {{
  login(email: $email, password: $password) {{ token user {{ {USER_FIELDS} }} }}
}}
"""

UPDATE_MAIL_SETUP = f"""
mutation UpdateMailSetup($input: MailSetupInput!) {{
  updateMailSetup(input: $input) {{ {MAIL_SETUP_FIELDS} }}
}}
"""


def _crud(entity: str, fields: str, input_type: str, parent: str = None):
    """Build the create/update/delete trio for one entity type."""
    name = entity[0].upper() + entity[1:]
    if parent:
        create = (
            f"mutation Create{name}(${parent}: Int!, $input: {input_type}Input!) "
            f"{{ create{name}({parent}: ${parent}, input: $input) {{ {fields} }} }}"
        )
    else:
        create = (
            f"mutation Create{name}($input: {input_type}Input!) "
            f"{{ create{name}(input: $input) {{ {fields} }} }}"
        )
    update = (
        f"mutation Update{name}($id: Int!, $input: {input_type}UpdateInput!) "
        f"{{ update{name}(id: $id, input: $input) {{ {fields} }} }}"
    )
    delete = f"mutation Delete{name}($id: Int!) {{ delete{name}(id: $id) }}"
    return create, update, delete


CREATE_CUSTOMER, UPDATE_CUSTOMER, DELETE_CUSTOMER = _crud(
    "customer", CUSTOMER_FIELDS, "CustomerMaster")
CREATE_CUSTOMER_LOCATION, UPDATE_CUSTOMER_LOCATION, DELETE_CUSTOMER_LOCATION = _crud(
    "customerLocation", LOCATION_FIELDS, "CustomerLocation")
CREATE_BRAND, UPDATE_BRAND, DELETE_BRAND = _crud("brand", NAMED_FIELDS, "Brand")
CREATE_CATEGORY, UPDATE_CATEGORY, DELETE_CATEGORY = _crud("category", NAMED_FIELDS, "Category")
CREATE_PRODUCT, UPDATE_PRODUCT, DELETE_PRODUCT = _crud("product", PRODUCT_FIELDS, "Product")
CREATE_INVOICE, UPDATE_INVOICE, DELETE_INVOICE = _crud("invoice", INVOICE_FIELDS, "Invoice")
CREATE_INVOICE_ITEM, UPDATE_INVOICE_ITEM, DELETE_INVOICE_ITEM = _crud(
    "invoiceItem", INVOICE_ITEM_FIELDS, "InvoiceItem", parent="invoiceId")
CREATE_AMC_PROPOSAL, UPDATE_AMC_PROPOSAL, DELETE_AMC_PROPOSAL = _crud(
    "amcProposal", PROPOSAL_FIELDS, "AmcProposal")
CREATE_PROPOSAL_ITEM, UPDATE_PROPOSAL_ITEM, DELETE_PROPOSAL_ITEM = _crud(
    "proposalItem", PROPOSAL_ITEM_FIELDS, "ProposalItem", parent="proposalId")

GENERATE_PROPOSAL_DOCUMENT = f"""
mutation GenerateProposalDocument($proposalId: Int!) {{
  generateProposalDocument(proposalId: $proposalId) {{ {DOCUMENT_FIELDS} }}
}}
"""

SEND_PROPOSAL_EMAIL = f"""
mutation SendProposalEmail($input: SendProposalEmailInput!) {{
  sendProposalEmail(input: $input) {{ {EMAIL_RECORD_FIELDS} }}
}}
"""
