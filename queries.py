#!/usr/bin/env python3
# queries.py
"""GraphQL read documents, one per API query the admin uses."""

PAGINATION = "pagination { page limit total totalPages }"

USER_FIELDS = "id email name role status createdat updatedat"
MAIL_SETUP_FIELDS = (
    "id smtphost smtpport smtpuser smtppassword enablessl sendername senderemail createdat updatedat"
)
CUSTOMER_FIELDS = "id name details contactPerson email address status createdat updatedat"
LOCATION_FIELDS = (
    "id customerId displayName location contactPerson email phone1 phone2 address city state pin "
    "gstin pan status createdat updatedat"
)
NAMED_FIELDS = "id name details status createdat updatedat"
PRODUCT_FIELDS = (
    "id name details brandId categoryId model status createdat updatedat "
    "brand { id name } category { id name }"
)
INVOICE_FIELDS = (
    "id customerId locationId invoiceNo invoiceDate total discount subtotal grandTotal status "
    "createdat updatedat customer { id name } location { id displayName }"
)
INVOICE_ITEM_FIELDS = "id invoiceId productId serialNo quantity amount createdat updatedat"
PROPOSAL_FIELDS = (
    "id proposalno proposaldate amcstartdate amcenddate customerId contractno billingaddress "
    "total additionalcharge discount taxrate taxamount grandtotal proposalstatus createdat updatedat"
)
PROPOSAL_ITEM_FIELDS = (
    "id proposalId locationId invoiceId productId serialno saccode quantity rate amount "
    "createdat updatedat location { id displayName } invoice { id invoiceNo }"
)
DOCUMENT_FIELDS = "id proposalno doclink createdby createdat updatedat"
EMAIL_RECORD_FIELDS = "id proposalno email status sentby message createdat updatedat"

ME = f"query Me {{ me {{ {USER_FIELDS} }} }}"

GET_MAIL_SETUP = f"query GetMailSetup {{ getMailSetup {{ {MAIL_SETUP_FIELDS} }} }}"

GET_CUSTOMERS = f"""
query GetCustomers($page: Int, $limit: Int, $search: String, $status: String) {{
  customers(page: $page, limit: $limit, search: $search, status: $status) {{
    data {{ {CUSTOMER_FIELDS} }}
    {PAGINATION}
  }}
}}
"""

GET_CUSTOMER = f"""
query GetCustomer($id: Int!) {{
  customer(id: $id) {{
    {CUSTOMER_FIELDS}
    locations {{ {LOCATION_FIELDS} }}
  }}
}}
"""

GET_CUSTOMER_LOCATIONS = f"""
query GetCustomerLocations($page: Int, $limit: Int, $search: String, $status: String, $customerId: Int) {{
  customerLocations(page: $page, limit: $limit, search: $search, status: $status, customerId: $customerId) {{
    data {{ {LOCATION_FIELDS} customer {{ id name }} }}
    {PAGINATION}
  }}
}}
"""

GET_CUSTOMER_LOCATION = f"""
query GetCustomerLocation($id: Int!) {{
  customerLocation(id: $id) {{ {LOCATION_FIELDS} customer {{ id name }} }}
}}
"""

GET_BRANDS = f"""
query GetBrands($page: Int, $limit: Int, $search: String, $status: String) {{
  brands(page: $page, limit: $limit, search: $search, status: $status) {{
    data {{ {NAMED_FIELDS} }}
    {PAGINATION}
  }}
}}
"""

GET_BRAND = f"query GetBrand($id: Int!) {{ brand(id: $id) {{ {NAMED_FIELDS} }} }}"

GET_CATEGORIES = f"""
query GetCategories($page: Int, $limit: Int, $search: String, $status: String) {{
  categories(page: $page, limit: $limit, search: $search, status: $status) {{
    data {{ {NAMED_FIELDS} }}
    {PAGINATION}
  }}
}}
"""

GET_CATEGORY = f"query GetCategory($id: Int!) {{ category(id: $id) {{ {NAMED_FIELDS} }} }}"

GET_PRODUCTS = f"""
query GetProducts($page: Int, $limit: Int, $search: String, $status: String, $brandId: Int, $categoryId: Int) {{
  products(page: $page, limit: $limit, search: $search, status: $status, brandId: $brandId, categoryId: $categoryId) {{
    data {{ {PRODUCT_FIELDS} }}
    {PAGINATION}
  }}
}}
"""

GET_PRODUCT = f"query GetProduct($id: Int!) {{ product(id: $id) {{ {PRODUCT_FIELDS} }} }}"

GET_INVOICES = f"""
query GetInvoices($page: Int, $limit: Int, $search: String, $status: String, $customerId: Int) {{
  invoices(page: $page, limit: $limit, search: $search, status: $status, customerId: $customerId) {{
    data {{ {INVOICE_FIELDS} }}
    {PAGINATION}
  }}
}}
"""

GET_INVOICE = f"""
query GetInvoice($id: Int!) {{
  invoice(id: $id) {{
    {INVOICE_FIELDS}
    items {{
      {INVOICE_ITEM_FIELDS}
      product {{ id name model brand {{ id name }} category {{ id name }} }}
    }}
  }}
}}
"""

GET_INVOICE_ITEMS = f"""
query GetInvoiceItems($page: Int, $limit: Int, $invoiceId: Int) {{
  invoiceItems(page: $page, limit: $limit, invoiceId: $invoiceId) {{
    data {{ {INVOICE_ITEM_FIELDS} product {{ id name model }} }}
    {PAGINATION}
  }}
}}
"""

GET_AMC_PROPOSALS = f"""
query GetAmcProposals($page: Int, $limit: Int, $search: String, $status: String, $customerId: Int) {{
  amcProposals(page: $page, limit: $limit, search: $search, status: $status, customerId: $customerId) {{
    data {{ {PROPOSAL_FIELDS} customer {{ id name }} }}
    {PAGINATION}
  }}
}}
"""

GET_AMC_PROPOSAL = f"""
query GetAmcProposal($id: Int!) {{
  amcProposal(id: $id) {{
    {PROPOSAL_FIELDS}
    doclink
    termsconditions
    customer {{ id name email }}
    items {{
      {PROPOSAL_ITEM_FIELDS}
      product {{ id name model brand {{ id name }} category {{ id name }} }}
    }}
  }}
}}
"""

GET_PROPOSAL_ITEMS = f"""
query GetProposalItems($page: Int, $limit: Int, $proposalId: Int) {{
  proposalItems(page: $page, limit: $limit, proposalId: $proposalId) {{
    data {{ {PROPOSAL_ITEM_FIELDS} product {{ id name model }} }}
    {PAGINATION}
  }}
}}
"""

GET_PROPOSAL_DOCUMENTS = f"""
query GetProposalDocuments($page: Int, $limit: Int, $proposalno: String) {{
  proposalDocuments(page: $page, limit: $limit, proposalno: $proposalno) {{
    data {{ {DOCUMENT_FIELDS} }}
    {PAGINATION}
  }}
}}
"""

GET_EMAIL_RECORDS = f"""
query GetEmailRecords($page: Int, $limit: Int, $proposalno: String) {{
  emailRecords(page: $page, limit: $limit, proposalno: $proposalno) {{
    data {{ {EMAIL_RECORD_FIELDS} }}
    {PAGINATION}
  }}
}}
"""
