#!/usr/bin/env python3
# app.py
import logging
from datetime import datetime

import requests
from flask import Flask, abort, flash, jsonify, redirect, render_template, request, url_for
from pydantic import ValidationError
from werkzeug.exceptions import NotFound

import mutations
import queries
from auth import SessionContext
from cascade import invoice_cascade, line_amount, proposal_item_cascade
from config import Config
from detail import CustomerDetail, InvoiceDetail, ProposalDetail
from dispatcher import DispatchBusy
from forms import DeleteConfirmation, EntityForm, field_errors
from graphql_client import ApiError, AuthError, GraphQLClient
from listing import ListView
from models import AdminUser, Brand, Customer, Invoice, MailSetup, Product, ProposalStatus, parse_page
from resources import (
    INVOICE_ITEM_FIELDS, INVOICES, LOCATION_FIELDS, OPTION_SOURCES, PROPOSAL_ITEM_FIELDS, PROPOSALS,
    RESOURCES, FormField, money, nice_date,
)
from schemas import InvoiceItemForm, LocationForm, LoginForm, MailSetupForm, ProposalItemForm, SendEmailForm

logger = logging.getLogger(__name__)

PUBLIC_ENDPOINTS = {"login", "static", "health"}
MAIL_SETUP_FIELDS = [
    FormField("smtphost", "SMTP Host", placeholder="smtp.example.com"),
    FormField("smtpport", "SMTP Port", "number", step="1"),
    FormField("smtpuser", "SMTP User"),
    FormField("smtppassword", "SMTP Password", "password"),
    FormField("enablessl", "Enable SSL", "checkbox"),
    FormField("sendername", "Sender Name"),
    FormField("senderemail", "Sender Email", "email"),
]


def configure_logging(app):
    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # the request log would repeat every bearer-authenticated call
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def safe_next(default):
    target = request.args.get("next") or request.form.get("next") or ""
    if target.startswith("/") and not target.startswith("//"):
        return target
    return default


def create_app(test_config=None, http=None):
    app = Flask(__name__, static_folder="static", template_folder="templates")
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)
    configure_logging(app)
    # one pooled HTTP session per app; tests inject an in-memory fake
    app.extensions["amc_http"] = http or requests.Session()

    def api(token=True):
        return GraphQLClient(
            app.config["API_URL"],
            token=SessionContext().token if token else None,
            http=app.extensions["amc_http"],
            timeout=app.config["API_TIMEOUT"],
        )

    app.jinja_env.filters["money"] = money
    app.jinja_env.filters["nice_date"] = nice_date

    @app.template_filter("status_label")
    def status_label(value):
        try:
            return ProposalStatus(value).label
        except ValueError:
            return str(value or "-").title()

    @app.context_processor
    def inject_globals():
        return {"now": datetime.now(), "nav": RESOURCES, "claims": SessionContext().claims}

    # ---------------- Guard / errors ----------------
    @app.before_request
    def guard():
        ctx = SessionContext()
        if request.endpoint in PUBLIC_ENDPOINTS:
            if request.endpoint == "login" and ctx.is_authenticated:
                return redirect(url_for("dashboard"))
            return None
        if ctx.is_authenticated:
            return None
        if ctx.token:
            logger.info("session token expired, signing out")
            ctx.logout()
            flash("Your session has expired. Please log in again.", "warning")
        if request.path.startswith("/api/"):
            return jsonify({"ok": False, "error": "Not authenticated"}), 401
        return redirect(url_for("login"))

    @app.errorhandler(AuthError)
    def handle_auth_error(e):
        logger.info("API rejected the session (%s), redirecting to login", e.code or e.status_code)
        SessionContext().logout()
        if request.path.startswith("/api/"):
            return jsonify({"ok": False, "error": e.message}), 401
        flash("Your session has expired. Please log in again.", "warning")
        return redirect(url_for("login"))

    @app.errorhandler(NotFound)
    def not_found(e):
        slug = request.path.strip("/").split("/")[0]
        owner = next((r for r in RESOURCES if r.slug == slug), None)
        back = url_for(f"{owner.slug.replace('-', '_')}_list") if owner else url_for("dashboard")
        return render_template("not_found.html", back=back), 404

    @app.route("/health")
    def health():
        return jsonify({"ok": True})

    # ---------------- Auth ----------------
    @app.route("/login", methods=["GET", "POST"])
    def login():
        values, errors = {"email": ""}, {}
        if request.method == "POST":
            values = {"email": request.form.get("email", "")}
            try:
                form = LoginForm.model_validate(request.form.to_dict())
            except ValidationError as e:
                errors = field_errors(e)
            else:
                try:
                    data = api(token=False).fetch(
                        mutations.LOGIN, "login", {"email": form.email.lower(), "password": form.password})
                    user = AdminUser.model_validate((data or {}).get("user"))
                except ApiError as e:
                    # a bad password is an ordinary failure here, not an expired session
                    flash(e.message or "Invalid credentials.", "danger")
                except ValidationError as e:
                    logger.warning("unreadable login reply: %s", e)
                    flash("Unexpected response from the server", "danger")
                else:
                    SessionContext().login(user, data["token"])
                    flash("Logged in successfully.", "success")
                    return redirect(url_for("dashboard"))
        return render_template("login.html", values=values, errors=errors)

    @app.route("/logout", methods=["POST"])
    def logout():
        SessionContext().logout()
        flash("Logged out.", "info")
        return redirect(url_for("login"))

    # ---------------- Home / Dashboard ----------------
    @app.route("/")
    def index():
        return redirect(url_for("dashboard"))

    @app.route("/dashboard")
    def dashboard():
        client = api()
        totals = {}
        for title, document, root, record_cls in (
            ("Customers", queries.GET_CUSTOMERS, "customers", Customer),
            ("Invoices", queries.GET_INVOICES, "invoices", Invoice),
            ("Products", queries.GET_PRODUCTS, "products", Product),
            ("Brands", queries.GET_BRANDS, "brands", Brand),
        ):
            view = ListView(document, root, record_cls, limit=1).load(client)
            totals[title] = None if view.error else view.pagination.total
        recent = ListView(queries.GET_INVOICES, "invoices", Invoice, limit=5).load(client)
        return render_template("dashboard.html", totals=totals, recent=recent)

    @app.route("/profile")
    def profile():
        try:
            user = AdminUser.model_validate(api().fetch(queries.ME, "me"))
        except AuthError:
            raise
        except (ApiError, ValidationError) as e:
            logger.warning("loading profile failed: %s", e)
            user = None
        return render_template("profile.html", user=user, claims=SessionContext().claims)

    @app.route("/mail-settings", methods=["GET", "POST"])
    def mail_settings():
        client = api()
        try:
            data = client.fetch(queries.GET_MAIL_SETUP, "getMailSetup")
            setup = MailSetup.model_validate(data) if data else None
        except AuthError:
            raise
        except (ApiError, ValidationError) as e:
            logger.warning("loading mail settings failed: %s", e)
            setup = None
        # the service keeps a single settings row, updated in place by input alone
        form = EntityForm(MailSetupForm, None, mutations.UPDATE_MAIL_SETUP, "Mail settings").open(setup)
        if request.method == "POST":
            valid = form.validate(request.form.to_dict())
            if valid is not None:
                try:
                    form.dispatcher.run(client, mutations.UPDATE_MAIL_SETUP, {"input": valid.to_input(create=False)})
                except AuthError:
                    raise
                except (ApiError, DispatchBusy) as e:
                    flash(str(e) or "An error occurred", "danger")
                else:
                    flash("Mail settings saved successfully", "success")
                    return redirect(url_for("mail_settings"))
        return render_template("mail_settings.html", form=form, fields=MAIL_SETUP_FIELDS)

    # ---------------- Shared helpers ----------------
    def load_options(client, fields):
        options = {}
        for f in fields:
            if f.choices:
                options[f.name] = list(f.choices)
            elif f.options in OPTION_SOURCES:
                document, root, record_cls, label = OPTION_SOURCES[f.options]
                try:
                    payload = client.fetch(document, root, {"page": 1, "limit": app.config["OPTIONS_LIMIT"]})
                    rows = parse_page(payload, record_cls).rows
                except AuthError:
                    raise
                except (ApiError, ValidationError) as e:
                    logger.warning("loading %s options failed: %s", f.options, e)
                    rows = []
                options[f.name] = [(str(r.id), label(r)) for r in rows]
        return options

    def settle(cascade, client, values, changed=None, value=None):
        """Bring a cascade to the state a browser would see after editing `changed`."""
        cascade.run(client, cascade.populate(values))
        if changed:
            cascade.run(client, cascade.set(changed, value))
        return cascade

    def cascade_options(cascade):
        snapshot = cascade.snapshot()
        return {name: [(o["value"], o["label"]) for o in state["options"]]
                for name, state in snapshot["fields"].items()}, snapshot

    def get_record(client, resource, record_id):
        try:
            data = client.fetch(resource.get_doc, resource.get_root, {"id": record_id})
            return resource.record_cls.model_validate(data) if data else None
        except AuthError:
            raise
        except (ApiError, ValidationError) as e:
            logger.warning("loading %s %s failed: %s", resource.get_root, record_id, e)
            return None

    def render_form(title, form, fields, options, cancel_url, cascade=None, state_url=None, extra=None):
        snapshot = None
        if cascade is not None:
            cascaded, snapshot = cascade_options(cascade)
            options = {**options, **cascaded}
        if form.error:
            flash(form.error, "danger")
        return render_template(
            "form.html", title=title, form=form, fields=fields, options=options, cancel_url=cancel_url,
            snapshot=snapshot, state_url=state_url, extra=extra or {},
        )

    def created_id(result):
        record = next(iter((result or {}).values()), None)
        return record.get("id") if isinstance(record, dict) else None

    # ---------------- Generic resources ----------------
    def register(resource):
        endpoint = resource.slug.replace("-", "_")

        def list_page():
            view = ListView.from_args(request.args, resource.list_doc, resource.list_root, resource.record_cls,
                                      limit=app.config["PAGE_LIMIT"])
            view.load(api())
            return render_template("list.html", resource=resource, view=view, endpoint=endpoint)

        def form_page(record_id=None):
            client = api()
            record = None
            if record_id is not None:
                record = get_record(client, resource, record_id)
                if record is None:
                    abort(404)
            form = EntityForm(resource.schema, resource.create_doc, resource.update_doc, resource.entity,
                              resource.defaults).open(record)
            cascade = invoice_cascade(app.config["OPTIONS_LIMIT"]) if resource is INVOICES else None
            default_back = url_for(f"{endpoint}_list")
            if request.method == "POST":
                raw = request.form.to_dict()
                check = None
                if cascade is not None:
                    check = lambda values: settle(cascade, client, values).membership_errors()
                if form.submit(client, raw, check=check):
                    flash(form.message, "success")
                    new_id = created_id(form.result) if record is None else None
                    if new_id is not None and resource.has_detail:
                        return redirect(url_for(f"{endpoint}_detail", record_id=new_id))
                    return redirect(safe_next(default_back))
            if cascade is not None:
                # also after a rejected post, so the location select shows the posted customer's scope
                settle(cascade, client, form.values)
            verb = "Edit" if form.editing else "Add"
            return render_form(
                f"{verb} {resource.entity}", form, resource.fields, load_options(client, resource.fields),
                safe_next(default_back), cascade,
                url_for("invoice_form_state") if cascade is not None else None,
            )

        def delete_page(record_id):
            client = api()
            record = get_record(client, resource, record_id)
            if record is None:
                abort(404)
            confirm = DeleteConfirmation(resource.delete_doc, resource.entity, resource.label)
            confirm.request(record)
            back = url_for(f"{endpoint}_list")
            if request.method == "POST":
                if confirm.confirm(client):
                    flash(confirm.message, "success")
                    return redirect(back)
                flash(confirm.error, "danger")
            return render_template("confirm_delete.html", title=f"Delete {resource.entity}",
                                   prompt=confirm.prompt, cancel_url=safe_next(back))

        app.add_url_rule(f"/{resource.slug}", f"{endpoint}_list", list_page)
        app.add_url_rule(f"/{resource.slug}/new", f"{endpoint}_new", form_page, methods=["GET", "POST"])
        app.add_url_rule(f"/{resource.slug}/<int:record_id>/edit", f"{endpoint}_edit", form_page,
                         methods=["GET", "POST"])
        app.add_url_rule(f"/{resource.slug}/<int:record_id>/delete", f"{endpoint}_delete", delete_page,
                         methods=["GET", "POST"])

    for resource in RESOURCES:
        register(resource)

    def nested_delete(client, document, entity, record, label, back):
        if record is None:
            abort(404)
        confirm = DeleteConfirmation(document, entity, label)
        confirm.request(record)
        if request.method == "POST":
            if confirm.confirm(client):
                flash(confirm.message, "success")
                return redirect(back)
            flash(confirm.error, "danger")
        return render_template("confirm_delete.html", title=f"Delete {entity}", prompt=confirm.prompt,
                               cancel_url=back)

    def find(rows, row_id):
        return next((r for r in rows if r.id == row_id), None)

    # ---------------- CRM: Customers ----------------
    @app.route("/customers/<int:record_id>")
    def customers_detail(record_id):
        client = api()
        detail = CustomerDetail(client, record_id).load()
        if detail.not_found:
            abort(404)
        invoices = ListView.from_args(request.args, queries.GET_INVOICES, "invoices", Invoice,
                                      limit=app.config["PAGE_LIMIT"], scope={"customerId": record_id})
        invoices.load(client)
        return render_template("customer_detail.html", customer=detail.record, invoices=invoices)

    @app.route("/customers/<int:record_id>/locations/new", methods=["GET", "POST"],
               defaults={"location_id": None}, endpoint="location_new")
    @app.route("/customers/<int:record_id>/locations/<int:location_id>/edit", methods=["GET", "POST"])
    def location_edit(record_id, location_id):
        client = api()
        detail = CustomerDetail(client, record_id).load()
        if detail.not_found:
            abort(404)
        location = None
        if location_id is not None:
            location = find(detail.record.locations, location_id)
            if location is None:
                abort(404)
        form = EntityForm(LocationForm, mutations.CREATE_CUSTOMER_LOCATION, mutations.UPDATE_CUSTOMER_LOCATION,
                          "Location", defaults=lambda: {"customerId": str(record_id), "status": "active"})
        form.open(location)
        back = url_for("customers_detail", record_id=record_id)
        if request.method == "POST" and form.submit(client, request.form.to_dict()):
            flash(form.message, "success")
            return redirect(back)
        title = f"{'Edit' if form.editing else 'Add'} Location for {detail.record.name}"
        return render_form(title, form, LOCATION_FIELDS, load_options(client, LOCATION_FIELDS), back)

    @app.route("/customers/<int:record_id>/locations/<int:location_id>/delete", methods=["GET", "POST"])
    def location_delete(record_id, location_id):
        client = api()
        detail = CustomerDetail(client, record_id).load()
        if detail.not_found:
            abort(404)
        return nested_delete(client, mutations.DELETE_CUSTOMER_LOCATION, "Location",
                             find(detail.record.locations, location_id), lambda r: r.displayName,
                             url_for("customers_detail", record_id=record_id))

    # ---------------- ERP: Invoices ----------------
    @app.route("/invoices/<int:record_id>")
    def invoices_detail(record_id):
        detail = InvoiceDetail(api(), record_id).load()
        if detail.not_found:
            abort(404)
        return render_template("invoice_detail.html", invoice=detail.record)

    @app.route("/invoices/<int:record_id>/items/new", methods=["GET", "POST"],
               defaults={"item_id": None}, endpoint="invoice_item_new")
    @app.route("/invoices/<int:record_id>/items/<int:item_id>/edit", methods=["GET", "POST"])
    def invoice_item_edit(record_id, item_id):
        client = api()
        detail = InvoiceDetail(client, record_id).load()
        if detail.not_found:
            abort(404)
        item = None
        if item_id is not None:
            item = find(detail.record.items, item_id)
            if item is None:
                abort(404)
        form = EntityForm(InvoiceItemForm, mutations.CREATE_INVOICE_ITEM, mutations.UPDATE_INVOICE_ITEM, "Item",
                          parent={"invoiceId": record_id}).open(item)
        back = url_for("invoices_detail", record_id=record_id)
        if request.method == "POST" and form.submit(client, request.form.to_dict()):
            flash(form.message, "success")
            return redirect(back)
        title = f"{'Edit' if form.editing else 'Add'} Item on {detail.record.invoiceNo}"
        return render_form(title, form, INVOICE_ITEM_FIELDS, load_options(client, INVOICE_ITEM_FIELDS), back)

    @app.route("/invoices/<int:record_id>/items/<int:item_id>/delete", methods=["GET", "POST"])
    def invoice_item_delete(record_id, item_id):
        client = api()
        detail = InvoiceDetail(client, record_id).load()
        if detail.not_found:
            abort(404)
        return nested_delete(client, mutations.DELETE_INVOICE_ITEM, "Item", find(detail.record.items, item_id),
                             lambda r: r.serialNo or f"#{r.id}", url_for("invoices_detail", record_id=record_id))

    # ---------------- AMC Proposals ----------------
    def proposal_detail(client, record_id):
        detail = ProposalDetail(client, record_id, side_limit=app.config["SIDE_LIMIT"]).load()
        if detail.not_found:
            abort(404)
        return detail

    @app.route("/amc-proposals/<int:record_id>")
    def amc_proposals_detail(record_id):
        detail = proposal_detail(api(), record_id)
        return render_template("proposal_detail.html", detail=detail, proposal=detail.record,
                               status_options=PROPOSALS.status_options)

    @app.route("/amc-proposals/<int:record_id>/status", methods=["POST"])
    def proposal_status(record_id):
        detail = proposal_detail(api(), record_id)
        if detail.change_status(request.form.get("proposalstatus", "")):
            flash(detail.message, "success")
        else:
            flash(detail.error, "danger")
        return redirect(url_for("amc_proposals_detail", record_id=record_id))

    @app.route("/amc-proposals/<int:record_id>/generate", methods=["POST"])
    def proposal_generate(record_id):
        detail = proposal_detail(api(), record_id)
        detail.generate_document()
        if detail.error:
            flash(detail.error, "danger")
        else:
            flash(detail.message, "success")
        return redirect(url_for("amc_proposals_detail", record_id=record_id))

    @app.route("/amc-proposals/<int:record_id>/email", methods=["GET", "POST"])
    def proposal_email(record_id):
        detail = proposal_detail(api(), record_id)
        values = {"email": detail.default_recipient, "message": ""}
        errors = {}
        if request.method == "POST":
            values = {"email": request.form.get("email", ""), "message": request.form.get("message", "")}
            try:
                form = SendEmailForm.model_validate(values)
            except ValidationError as e:
                errors = field_errors(e)
            else:
                detail.send_email(form.email, form.message)
                if detail.error is None:
                    flash(detail.message, "success")
                    return redirect(url_for("amc_proposals_detail", record_id=record_id))
                flash(detail.error, "danger")
        return render_template("proposal_email.html", detail=detail, proposal=detail.record, values=values,
                               errors=errors, can_send=bool(detail.doclink))

    @app.route("/amc-proposals/<int:record_id>/items/new", methods=["GET", "POST"],
               defaults={"item_id": None}, endpoint="proposal_item_new")
    @app.route("/amc-proposals/<int:record_id>/items/<int:item_id>/edit", methods=["GET", "POST"])
    def proposal_item_edit(record_id, item_id):
        client = api()
        detail = proposal_detail(client, record_id)
        item = None
        if item_id is not None:
            item = find(detail.record.items, item_id)
            if item is None:
                abort(404)
        form = EntityForm(ProposalItemForm, mutations.CREATE_PROPOSAL_ITEM, mutations.UPDATE_PROPOSAL_ITEM,
                          "Item", parent={"proposalId": record_id}).open(item)
        customer_id = str(detail.record.customerId)
        cascade = proposal_item_cascade(app.config["OPTIONS_LIMIT"])
        back = url_for("amc_proposals_detail", record_id=record_id)

        if request.method == "POST":
            raw = request.form.to_dict()
            # amount is never taken from the browser, and the serial is filled the same way the form does
            picked = raw.get("productId", "")
            settle(cascade, client, {**form.values, **raw, "customerId": customer_id, "productId": ""},
                   "productId", picked)
            # a serial typed on the page wins over the picked line's own
            raw["serialno"] = (raw.get("serialno") or "").strip() or cascade.values["serialno"]
            raw["amount"] = line_amount(raw.get("quantity"), raw.get("rate"))
            if form.submit(client, raw, check=lambda values: cascade.membership_errors()):
                flash(form.message, "success")
                return redirect(back)
        else:
            settle(cascade, client, {**form.values, "customerId": customer_id})
            form.values["amount"] = cascade.values["amount"]
        title = f"{'Edit' if form.editing else 'Add'} Item on {detail.record.proposalno}"
        return render_form(title, form, PROPOSAL_ITEM_FIELDS, {}, back, cascade,
                           url_for("proposal_item_form_state"), extra={"customerId": customer_id})

    @app.route("/amc-proposals/<int:record_id>/items/<int:item_id>/delete", methods=["GET", "POST"])
    def proposal_item_delete(record_id, item_id):
        client = api()
        detail = proposal_detail(client, record_id)
        return nested_delete(client, mutations.DELETE_PROPOSAL_ITEM, "Item", find(detail.record.items, item_id),
                             lambda r: r.serialno or f"#{r.id}",
                             url_for("amc_proposals_detail", record_id=record_id))

    # ---------------- Form state API for the browser ----------------
    def cascade_response(cascade):
        """
        Expects JSON: {values: {...}, changed: field, value: str, rev: int}
        `values` are the form's values before the change; the reply echoes `rev`
        so the page can drop answers that arrive after a newer edit.
        """
        body = request.get_json(silent=True) or {}
        values = body.get("values") or {}
        changed = body.get("changed") or None
        if not isinstance(values, dict) or (changed and changed not in cascade.values):
            return jsonify({"ok": False, "error": "Invalid form state"}), 400
        settle(cascade, api(), values, changed, body.get("value"))
        return jsonify({"ok": True, "rev": body.get("rev"), **cascade.snapshot()})

    @app.route("/api/invoice-form/state", methods=["POST"])
    def invoice_form_state():
        return cascade_response(invoice_cascade(app.config["OPTIONS_LIMIT"]))

    @app.route("/api/proposal-item-form/state", methods=["POST"])
    def proposal_item_form_state():
        return cascade_response(proposal_item_cascade(app.config["OPTIONS_LIMIT"]))

    return app


app = create_app()

if __name__ == "__main__":
    app.run(debug=True)
