# tests/fake_api.py
"""
In-memory stand-in for the AMC GraphQL service.

It is handed to GraphQLClient (and create_app) in place of requests.Session:
`post()` reads the operationName, applies it to plain dict tables, and answers
with the same envelope the real service uses. Computed figures (totals, tax,
grand totals) are worked out here, so tests can check that views re-fetch
instead of patching local copies.
"""
import itertools
import math
import time
from datetime import datetime, timezone

import jwt
import requests

SECRET = "fake-api-signing-secret-0123456789abcdef"
ADMIN = {"id": 1, "email": "admin@example.com", "name": "Admin", "role": "admin", "status": "active"}
PASSWORD = "secret"

# operation -> (table, root field)
LISTS = {
    "GetCustomers": ("customers", "customers"),
    "GetCustomerLocations": ("locations", "customerLocations"),
    "GetBrands": ("brands", "brands"),
    "GetCategories": ("categories", "categories"),
    "GetProducts": ("products", "products"),
    "GetInvoices": ("invoices", "invoices"),
    "GetInvoiceItems": ("invoiceItems", "invoiceItems"),
    "GetAmcProposals": ("proposals", "amcProposals"),
    "GetProposalItems": ("proposalItems", "proposalItems"),
    "GetProposalDocuments": ("documents", "proposalDocuments"),
    "GetEmailRecords": ("emails", "emailRecords"),
}
GETS = {
    "GetCustomer": ("customers", "customer"),
    "GetCustomerLocation": ("locations", "customerLocation"),
    "GetBrand": ("brands", "brand"),
    "GetCategory": ("categories", "category"),
    "GetProduct": ("products", "product"),
    "GetInvoice": ("invoices", "invoice"),
    "GetAmcProposal": ("proposals", "amcProposal"),
}
ENTITIES = {
    "Customer": "customers",
    "CustomerLocation": "locations",
    "Brand": "brands",
    "Category": "categories",
    "Product": "products",
    "Invoice": "invoices",
    "InvoiceItem": "invoiceItems",
    "AmcProposal": "proposals",
    "ProposalItem": "proposalItems",
}
SEARCH_FIELDS = ("name", "displayName", "invoiceNo", "proposalno", "email")
SCOPES = ("customerId", "brandId", "categoryId", "invoiceId", "proposalId", "proposalno")


def _now():
    return datetime.now(timezone.utc).isoformat()


class FakeResponse:
    def __init__(self, status_code, payload=None):
        self.status_code = status_code
        self._payload = payload

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload


class FakeApi:
    def __init__(self):
        self.tables = {name: {} for name in set(ENTITIES.values()) | {"documents", "emails"}}
        self._ids = {name: itertools.count(1) for name in self.tables}
        self.mail_setup = None
        self.calls = []
        self.failures = {}
        self.replies = {}
        self.tokens = set()

    # -- test helpers ------------------------------------------------------

    def issue_token(self, ttl=3600):
        token = jwt.encode(
            {"sub": str(ADMIN["id"]), "email": ADMIN["email"], "exp": int(time.time()) + ttl},
            SECRET, algorithm="HS256",
        )
        self.tokens.add(token)
        return token

    def revoke_all(self):
        self.tokens.clear()

    def fail(self, operation, message="Something went wrong", code=None, status=200, transport=False):
        """Make the next call of `operation` fail once."""
        self.failures[operation] = (message, code, status, transport)

    def reply(self, operation, data):
        """Answer the next call of `operation` with `data` as is."""
        self.replies[operation] = data

    def operations(self):
        return [c["operationName"] for c in self.calls]

    def add(self, table, **fields):
        record_id = next(self._ids[table])
        stamp = _now()
        record = {"id": record_id, "createdat": stamp, "updatedat": stamp}
        record.update(fields)
        if table in ("customers", "locations", "brands", "categories", "products", "invoices"):
            record.setdefault("status", "active")
        if table == "proposals":
            record.setdefault("proposalstatus", "new")
            record.setdefault("doclink", None)
            for money in ("additionalcharge", "discount", "taxrate"):
                record.setdefault(money, 0.0)
        if table == "invoices":
            record.setdefault("discount", 0.0)
        self.tables[table][record_id] = record
        self._recompute()
        return record

    # -- transport -------------------------------------------------------

    def post(self, url, json=None, headers=None, timeout=None):
        body = json or {}
        operation = body.get("operationName")
        variables = body.get("variables") or {}
        self.calls.append({"operationName": operation, "variables": variables, "headers": dict(headers or {})})

        if operation in self.replies:
            return FakeResponse(200, {"data": self.replies.pop(operation)})

        failure = self.failures.pop(operation, None)
        if failure:
            message, code, status, transport = failure
            if transport:
                raise requests.ConnectionError("connection refused")
            if status >= 500:
                return FakeResponse(status)
            return FakeResponse(status, self._error(message, code))

        if operation != "Login" and not self._authorized(headers or {}):
            return FakeResponse(200, self._error("Not authenticated", "UNAUTHENTICATED"))

        try:
            data = self._dispatch(operation, variables)
        except LookupError as e:
            return FakeResponse(200, self._error(str(e.args[0]), "BAD_USER_INPUT"))
        return FakeResponse(200, {"data": data})

    @staticmethod
    def _error(message, code=None):
        error = {"message": message}
        if code:
            error["extensions"] = {"code": code}
        return {"data": None, "errors": [error]}

    def _authorized(self, headers):
        auth = headers.get("Authorization", "")
        return auth.startswith("Bearer ") and auth[len("Bearer "):] in self.tokens

    # -- resolvers ---------------------------------------------------------

    def _dispatch(self, operation, variables):
        if operation == "Login":
            if variables.get("email") != ADMIN["email"] or variables.get("password") != PASSWORD:
                raise LookupError("Invalid email or password")
            return {"login": {"token": self.issue_token(), "user": dict(ADMIN, createdat=_now())}}
        if operation == "Me":
            return {"me": dict(ADMIN, createdat=_now())}
        if operation == "GetMailSetup":
            return {"getMailSetup": self.mail_setup}
        if operation == "UpdateMailSetup":
            self.mail_setup = dict(self.mail_setup or {"id": 1, "createdat": _now()}, **variables["input"])
            self.mail_setup["updatedat"] = _now()
            return {"updateMailSetup": self.mail_setup}
        if operation in LISTS:
            table, root = LISTS[operation]
            return {root: self._page(table, variables)}
        if operation in GETS:
            table, root = GETS[operation]
            record = self.tables[table].get(variables["id"])
            return {root: self._expand(table, record) if record else None}
        if operation == "GenerateProposalDocument":
            return {"generateProposalDocument": self._generate(variables["proposalId"])}
        if operation == "SendProposalEmail":
            return {"sendProposalEmail": self._send(variables["input"])}

        for prefix in ("Create", "Update", "Delete"):
            if operation.startswith(prefix) and operation[len(prefix):] in ENTITIES:
                name = operation[len(prefix):]
                return {prefix.lower() + name: getattr(self, "_" + prefix.lower())(ENTITIES[name], name, variables)}
        raise LookupError(f"Unknown operation {operation}")

    def _page(self, table, variables):
        rows = sorted(self.tables[table].values(), key=lambda r: r["id"], reverse=True)
        search = (variables.get("search") or "").lower()
        if search:
            rows = [r for r in rows if any(search in str(r.get(f) or "").lower() for f in SEARCH_FIELDS)]
        status = variables.get("status")
        if status:
            rows = [r for r in rows if r.get("status", r.get("proposalstatus")) == status]
        for scope in SCOPES:
            if variables.get(scope) is not None:
                rows = [r for r in rows if r.get(scope) == variables[scope]]
        page = variables.get("page") or 1
        limit = variables.get("limit") or 10
        total = len(rows)
        start = (page - 1) * limit
        return {
            "data": [self._expand(table, r) for r in rows[start:start + limit]],
            "pagination": {"page": page, "limit": limit, "total": total, "totalPages": math.ceil(total / limit)},
        }

    def _create(self, table, name, variables):
        fields = dict(variables["input"])
        for parent in ("invoiceId", "proposalId"):
            if parent in variables:
                fields[parent] = variables[parent]
        return self._expand(table, self.add(table, **fields))

    def _update(self, table, name, variables):
        record = self.tables[table].get(variables["id"])
        if record is None:
            raise LookupError(f"{name} not found")
        record.update(variables["input"])
        record["updatedat"] = _now()
        self._recompute()
        return self._expand(table, record)

    def _delete(self, table, name, variables):
        if self.tables[table].pop(variables["id"], None) is None:
            raise LookupError(f"{name} not found")
        self._recompute()
        return True

    def _generate(self, proposal_id):
        proposal = self.tables["proposals"].get(proposal_id)
        if proposal is None:
            raise LookupError("Proposal not found")
        count = sum(1 for d in self.tables["documents"].values() if d["proposalno"] == proposal["proposalno"])
        link = f"https://files.example.com/proposals/{proposal['proposalno']}-{count + 1}.pdf"
        proposal["doclink"] = link
        return self.add("documents", proposalno=proposal["proposalno"], doclink=link, createdby=ADMIN["name"])

    def _send(self, payload):
        proposal = self.tables["proposals"].get(payload["proposalId"])
        if proposal is None:
            raise LookupError("Proposal not found")
        if not proposal.get("doclink"):
            raise LookupError("Proposal document has not been generated")
        return self.add("emails", proposalno=proposal["proposalno"], email=payload["email"], status="sent",
                        sentby=ADMIN["name"], message=payload.get("message"))

    # -- projections -------------------------------------------------------

    def _ref(self, table, record_id, *fields):
        record = self.tables[table].get(record_id)
        if record is None:
            return None
        return {f: record.get(f) for f in ("id",) + fields}

    def _product_ref(self, product_id):
        ref = self._ref("products", product_id, "name", "model")
        if ref:
            product = self.tables["products"][product_id]
            ref["brand"] = self._ref("brands", product.get("brandId"), "name")
            ref["category"] = self._ref("categories", product.get("categoryId"), "name")
        return ref

    def _expand(self, table, record):
        out = dict(record)
        if table == "customers":
            out["locations"] = [dict(l) for l in self.tables["locations"].values() if l["customerId"] == record["id"]]
        elif table == "locations":
            out["customer"] = self._ref("customers", record["customerId"], "name")
        elif table == "products":
            out["brand"] = self._ref("brands", record.get("brandId"), "name")
            out["category"] = self._ref("categories", record.get("categoryId"), "name")
        elif table == "invoices":
            out["customer"] = self._ref("customers", record["customerId"], "name")
            out["location"] = self._ref("locations", record.get("locationId"), "displayName")
            out["items"] = [self._expand("invoiceItems", i) for i in self._children("invoiceItems", "invoiceId", record)]
        elif table == "invoiceItems":
            out["product"] = self._product_ref(record["productId"])
        elif table == "proposals":
            out["customer"] = self._ref("customers", record["customerId"], "name", "email")
            out["items"] = [self._expand("proposalItems", i)
                            for i in self._children("proposalItems", "proposalId", record)]
        elif table == "proposalItems":
            out["location"] = self._ref("locations", record.get("locationId"), "displayName")
            out["invoice"] = self._ref("invoices", record["invoiceId"], "invoiceNo")
            out["product"] = self._product_ref(record["productId"])
        return out

    def _children(self, table, key, parent):
        return [r for r in self.tables[table].values() if r.get(key) == parent["id"]]

    def _recompute(self):
        for invoice in self.tables.get("invoices", {}).values():
            total = sum(i["amount"] for i in self._children("invoiceItems", "invoiceId", invoice))
            invoice["total"] = round(total, 2)
            invoice["subtotal"] = round(total - invoice.get("discount", 0), 2)
            invoice["grandTotal"] = invoice["subtotal"]
        for proposal in self.tables.get("proposals", {}).values():
            total = sum(i["amount"] for i in self._children("proposalItems", "proposalId", proposal))
            taxable = total + proposal.get("additionalcharge", 0) - proposal.get("discount", 0)
            proposal["total"] = round(total, 2)
            proposal["taxamount"] = round(taxable * proposal.get("taxrate", 0) / 100, 2)
            proposal["grandtotal"] = round(taxable + proposal["taxamount"], 2)
