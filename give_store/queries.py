"""
Read access to the GiveWP tables.

GiveStore wraps one SQLite connection and turns GiveWP rows into the typed
records of give_store.records.  Every finder returns None when the row does
not exist; SQL errors propagate to the caller.

Tables used (default prefix ``wp_``):
    posts, give_donationmeta        donations (post_type give_payment), forms (give_forms)
    give_formmeta                   form totals, goal, donation levels
    give_donors, give_donormeta     donors and their custom fields
    give_subscriptions              recurring donations
    give_campaigns, give_campaign_forms
    usermeta                        API public/secret keys
    options                         give_settings (default currency)
"""

from __future__ import annotations

import sqlite3
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Optional

from give_store.config import AppConfig
from give_store.records import (
    Address,
    Campaign,
    CampaignGoalType,
    CampaignStatus,
    Donation,
    DonationForm,
    DonationFormLevel,
    DonationMode,
    DonationStatus,
    DonationType,
    Donor,
    Money,
    Subscription,
    SubscriptionPeriod,
    SubscriptionStatus,
    coerce_enum,
)
from give_store.serialization import maybe_unserialize

DONATION_POST_TYPE = "give_payment"
FORM_POST_TYPE = "give_forms"

# Donations that count towards totals and goals.
COUNTED_STATUSES = (DonationStatus.COMPLETE.value, DonationStatus.RENEWAL.value)

_DATETIME_FORMATS = ("%Y-%m-%d %H:%M:%S", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%d")


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse a MySQL-style datetime string; zero dates and blanks become None."""
    if not value or str(value).startswith("0000-00-00"):
        return None
    text = str(value).strip()
    for fmt in _DATETIME_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def _int(value: Any) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return 0


def _str(value: Any) -> str:
    return "" if value is None else str(value)


def _decimal(value: Any) -> Decimal:
    try:
        return Decimal(str(value).strip() or "0")
    except InvalidOperation:
        return Decimal(0)


class GiveStore:
    """Typed lookups against a GiveWP database connection."""

    def __init__(self, conn: sqlite3.Connection, config: AppConfig) -> None:
        self.conn = conn
        self.config = config
        self._currency: Optional[str] = None

    def _t(self, name: str) -> str:
        return self.config.table(name)

    # ── Generic helpers ───────────────────────────────────────────────────────

    def has_tables(self, names: Iterable[str]) -> bool:
        """Return True if every (unprefixed) table in ``names`` exists."""
        wanted = {self._t(n) for n in names}
        if not wanted:
            return True
        placeholders = ",".join("?" * len(wanted))
        rows = self.conn.execute(
            f"SELECT name FROM sqlite_master WHERE type='table' AND name IN ({placeholders})",
            tuple(wanted),
        ).fetchall()
        return {r[0] for r in rows} == wanted

    def _meta(self, table: str, id_column: str, object_id: int) -> dict[str, str]:
        """First value of each meta key, like get_meta(..., single=true)."""
        rows = self.conn.execute(
            f"SELECT meta_key, meta_value FROM {self._t(table)} "
            f"WHERE {id_column} = ? ORDER BY meta_id",
            (object_id,),
        ).fetchall()
        meta: dict[str, str] = {}
        for key, value in rows:
            meta.setdefault(key, value)
        return meta

    def _meta_all(self, table: str, id_column: str, object_id: int, key: str) -> list[str]:
        rows = self.conn.execute(
            f"SELECT meta_value FROM {self._t(table)} "
            f"WHERE {id_column} = ? AND meta_key = ? ORDER BY meta_id",
            (object_id, key),
        ).fetchall()
        return [r[0] for r in rows]

    def post_type(self, post_id: int) -> Optional[str]:
        """Return the post_type of a wp_posts row, or None if there is no row."""
        row = self.conn.execute(
            f"SELECT post_type FROM {self._t('posts')} WHERE ID = ?",
            (post_id,),
        ).fetchone()
        return row[0] if row else None

    def default_currency(self) -> str:
        """Currency from the serialized ``give_settings`` option, else config."""
        if self._currency is None:
            currency = None
            if self.has_tables(["options"]):
                row = self.conn.execute(
                    f"SELECT option_value FROM {self._t('options')} WHERE option_name = ?",
                    ("give_settings",),
                ).fetchone()
                settings = maybe_unserialize(row[0]) if row else None
                if isinstance(settings, dict):
                    currency = settings.get("currency")
            self._currency = str(currency or self.config.default_currency).upper()
        return self._currency

    # ── Donations ─────────────────────────────────────────────────────────────

    def find_donation(self, donation_id: int) -> Optional[Donation]:
        row = self.conn.execute(
            f"SELECT ID, post_date, post_modified, post_status, post_parent "
            f"FROM {self._t('posts')} WHERE ID = ? AND post_type = ?",
            (donation_id, DONATION_POST_TYPE),
        ).fetchone()
        if row is None:
            return None
        meta = self._meta("give_donationmeta", "donation_id", donation_id)
        currency = (meta.get("_give_payment_currency") or self.default_currency()).upper()

        status = coerce_enum(DonationStatus, row["post_status"])
        if status is DonationStatus.RENEWAL:
            donation_type = DonationType.RENEWAL
        elif meta.get("_give_subscription_payment") == "1":
            donation_type = DonationType.SUBSCRIPTION
        else:
            donation_type = DonationType.SINGLE

        fee = meta.get("_give_fee_amount")
        return Donation(
            id=row["ID"],
            form_id=_int(meta.get("_give_payment_form_id")),
            form_title=_str(meta.get("_give_payment_form_title")),
            purchase_key=_str(meta.get("_give_payment_purchase_key")),
            donor_ip=_str(meta.get("_give_payment_donor_ip")),
            created_at=parse_datetime(row["post_date"]),
            updated_at=parse_datetime(row["post_modified"]),
            status=status,
            type=donation_type,
            mode=coerce_enum(DonationMode, meta.get("_give_payment_mode") or "live"),
            amount=Money.from_decimal(meta.get("_give_payment_total", "0"), currency),
            fee_amount_recovered=Money.from_decimal(fee, currency) if fee else None,
            exchange_rate=_str(meta.get("_give_cs_exchange_rate") or "1"),
            gateway_id=_str(meta.get("_give_payment_gateway")),
            donor_id=_int(meta.get("_give_payment_donor_id")),
            honorific=_str(meta.get("_give_donor_billing_title")),
            first_name=_str(meta.get("_give_donor_billing_first_name")),
            last_name=_str(meta.get("_give_donor_billing_last_name")),
            email=_str(meta.get("_give_payment_donor_email")),
            phone=_str(meta.get("_give_payment_donor_phone")),
            subscription_id=_int(meta.get("subscription_id")),
            parent_id=_int(row["post_parent"]),
            billing_address=Address(
                country=_str(meta.get("_give_donor_billing_country")),
                address1=_str(meta.get("_give_donor_billing_address1")),
                address2=_str(meta.get("_give_donor_billing_address2")),
                city=_str(meta.get("_give_donor_billing_city")),
                state=_str(meta.get("_give_donor_billing_state")),
                zip=_str(meta.get("_give_donor_billing_zip")),
            ),
            anonymous=meta.get("_give_anonymous_donation") == "1",
            level_id=_str(meta.get("_give_payment_price_id")),
            gateway_transaction_id=_str(meta.get("_give_payment_transaction_id")),
            company=_str(meta.get("_give_donation_company")),
            comment=_str(meta.get("_give_donation_comment")),
        )

    # ── Donors ────────────────────────────────────────────────────────────────

    def find_donor(self, donor_id: int) -> Optional[Donor]:
        row = self.conn.execute(
            f"SELECT id, user_id, email, name, purchase_value, purchase_count, date_created "
            f"FROM {self._t('give_donors')} WHERE id = ?",
            (donor_id,),
        ).fetchone()
        if row is None:
            return None
        meta = self._meta("give_donormeta", "donor_id", donor_id)
        return Donor(
            id=row["id"],
            user_id=_int(row["user_id"]),
            created_at=parse_datetime(row["date_created"]),
            name=_str(row["name"]),
            prefix=_str(meta.get("_give_donor_title_prefix")),
            first_name=_str(meta.get("_give_donor_first_name")),
            last_name=_str(meta.get("_give_donor_last_name")),
            email=_str(row["email"]),
            phone=_str(meta.get("_give_donor_phone")),
            additional_emails=self._meta_all("give_donormeta", "donor_id", donor_id, "additional_email"),
            total_amount_donated=Money.from_decimal(row["purchase_value"] or "0", self.default_currency()),
            total_number_of_donations=_int(row["purchase_count"]),
        )

    def donor_meta(self, donor_id: int) -> dict[str, Any]:
        """Every custom field stored for a donor, serialized values decoded.

        When a key repeats, the last row wins.
        """
        rows = self.conn.execute(
            f"SELECT meta_key, meta_value FROM {self._t('give_donormeta')} "
            f"WHERE donor_id = ? ORDER BY meta_id",
            (donor_id,),
        ).fetchall()
        return {key: maybe_unserialize(value) for key, value in rows}

    # ── Subscriptions ─────────────────────────────────────────────────────────

    def find_subscription(self, subscription_id: int) -> Optional[Subscription]:
        row = self.conn.execute(
            f"SELECT * FROM {self._t('give_subscriptions')} WHERE id = ?",
            (subscription_id,),
        ).fetchone()
        if row is None:
            return None
        parent_id = _int(row["parent_payment_id"])
        currency = None
        if parent_id:
            currency = self._meta("give_donationmeta", "donation_id", parent_id).get("_give_payment_currency")
        currency = (currency or self.default_currency()).upper()
        return Subscription(
            id=row["id"],
            donation_form_id=_int(row["product_id"]),
            created_at=parse_datetime(row["created"]),
            renews_at=parse_datetime(row["expiration"]),
            donor_id=_int(row["customer_id"]),
            period=coerce_enum(SubscriptionPeriod, row["period"]),
            frequency=_int(row["frequency"]) or 1,
            installments=_int(row["bill_times"]),
            transaction_id=_str(row["transaction_id"]),
            amount=Money.from_decimal(row["recurring_amount"] or "0", currency),
            fee_amount_recovered=Money.from_decimal(row["recurring_fee_amount"] or "0", currency),
            status=coerce_enum(SubscriptionStatus, row["status"]),
            gateway_subscription_id=_str(row["profile_id"]),
            parent_donation_id=parent_id,
        )

    # ── Campaigns ─────────────────────────────────────────────────────────────

    def _campaign_from_row(self, row: sqlite3.Row) -> Campaign:
        return Campaign(
            id=row["id"],
            page_id=_int(row["campaign_page_id"]),
            default_form_id=_int(row["form_id"]),
            type=_str(row["campaign_type"]),
            title=_str(row["campaign_title"]),
            url=_str(row["campaign_url"]),
            short_description=_str(row["short_desc"]),
            long_description=_str(row["long_desc"]),
            logo=_str(row["campaign_logo"]),
            image=_str(row["campaign_image"]),
            primary_color=_str(row["primary_color"]),
            secondary_color=_str(row["secondary_color"]),
            goal=_int(row["campaign_goal"]),
            goal_type=coerce_enum(CampaignGoalType, row["goal_type"]),
            status=coerce_enum(CampaignStatus, row["status"]),
            start_date=parse_datetime(row["start_date"]),
            end_date=parse_datetime(row["end_date"]),
            created_at=parse_datetime(row["date_created"]),
        )

    def find_campaign(self, campaign_id: int) -> Optional[Campaign]:
        row = self.conn.execute(
            f"SELECT * FROM {self._t('give_campaigns')} WHERE id = ?",
            (campaign_id,),
        ).fetchone()
        return self._campaign_from_row(row) if row else None

    def find_campaign_by_form_id(self, form_id: int) -> Optional[Campaign]:
        """Campaign that owns ``form_id`` via the campaign_forms join table."""
        row = self.conn.execute(
            f"SELECT c.* FROM {self._t('give_campaigns')} c "
            f"JOIN {self._t('give_campaign_forms')} cf ON cf.campaign_id = c.id "
            f"WHERE cf.form_id = ? ORDER BY c.id LIMIT 1",
            (form_id,),
        ).fetchone()
        return self._campaign_from_row(row) if row else None

    def campaign_form_ids(self, campaign_id: int) -> list[int]:
        rows = self.conn.execute(
            f"SELECT form_id FROM {self._t('give_campaign_forms')} WHERE campaign_id = ?",
            (campaign_id,),
        ).fetchall()
        return [r[0] for r in rows]

    def _campaign_donations(self, form_ids: list[int]) -> list[dict[str, Any]]:
        """Counted donations made through any of ``form_ids``."""
        if not form_ids:
            return []
        form_ph = ",".join("?" * len(form_ids))
        status_ph = ",".join("?" * len(COUNTED_STATUSES))
        rows = self.conn.execute(
            f"""
            SELECT p.ID AS id,
                MAX(CASE WHEN m.meta_key = '_give_payment_total' THEN m.meta_value END) AS total,
                MAX(CASE WHEN m.meta_key = '_give_payment_donor_id' THEN m.meta_value END) AS donor_id,
                MAX(CASE WHEN m.meta_key = '_give_subscription_payment' THEN m.meta_value END) AS is_subscription
            FROM {self._t('posts')} p
            JOIN {self._t('give_donationmeta')} m ON m.donation_id = p.ID
            WHERE p.post_type = ? AND p.post_status IN ({status_ph})
              AND p.ID IN (
                  SELECT donation_id FROM {self._t('give_donationmeta')}
                  WHERE meta_key = '_give_payment_form_id'
                    AND CAST(meta_value AS INTEGER) IN ({form_ph})
              )
            GROUP BY p.ID
            """,
            (DONATION_POST_TYPE, *COUNTED_STATUSES, *form_ids),
        ).fetchall()
        return [dict(r) for r in rows]

    def campaign_goal_stats(self, campaign: Campaign) -> dict[str, Any]:
        """Progress towards the campaign goal.

        Returns ``actual``, ``actual_formatted``, ``percentage``, ``goal`` and
        ``goal_formatted``.  Amount goals are in major currency units.
        """
        donations = self._campaign_donations(self.campaign_form_ids(campaign.id))
        subscription_donations = [d for d in donations if d["is_subscription"] == "1"]
        goal_type = campaign.goal_type
        currency = self.default_currency()

        is_amount = goal_type in (CampaignGoalType.AMOUNT, CampaignGoalType.AMOUNT_FROM_SUBSCRIPTIONS)
        if goal_type is CampaignGoalType.AMOUNT_FROM_SUBSCRIPTIONS:
            actual: Any = sum((_decimal(d["total"]) for d in subscription_donations), Decimal(0))
        elif goal_type is CampaignGoalType.DONATIONS:
            actual = len(donations)
        elif goal_type is CampaignGoalType.DONORS:
            actual = len({_int(d["donor_id"]) for d in donations})
        elif goal_type is CampaignGoalType.SUBSCRIPTIONS:
            actual = len(subscription_donations)
        elif goal_type is CampaignGoalType.DONORS_FROM_SUBSCRIPTIONS:
            actual = len({_int(d["donor_id"]) for d in subscription_donations})
        else:
            is_amount = True
            actual = sum((_decimal(d["total"]) for d in donations), Decimal(0))

        goal = campaign.goal
        percentage = round(float(actual) / goal * 100, 2) if goal else 0.0
        if is_amount:
            return {
                "actual": float(actual),
                "actual_formatted": Money.from_decimal(actual, currency).format_to_decimal(),
                "percentage": percentage,
                "goal": goal,
                "goal_formatted": Money.from_decimal(goal, currency).format_to_decimal(),
            }
        return {
            "actual": actual,
            "actual_formatted": str(actual),
            "percentage": percentage,
            "goal": goal,
            "goal_formatted": str(goal),
        }

    # ── Forms ─────────────────────────────────────────────────────────────────

    def find_form(self, form_id: int) -> Optional[DonationForm]:
        row = self.conn.execute(
            f"SELECT ID, post_title, post_status, post_date, post_modified "
            f"FROM {self._t('posts')} WHERE ID = ? AND post_type = ?",
            (form_id, FORM_POST_TYPE),
        ).fetchone()
        if row is None:
            return None
        meta = self._meta("give_formmeta", "form_id", form_id)
        currency = self.default_currency()
        return DonationForm(
            id=row["ID"],
            title=_str(row["post_title"]),
            status=_str(row["post_status"]),
            created_at=parse_datetime(row["post_date"]),
            updated_at=parse_datetime(row["post_modified"]),
            levels=self._form_levels(meta, currency),
            goal_option=meta.get("_give_goal_option") == "enabled",
            total_number_of_donations=_int(meta.get("_give_form_sales")),
            total_amount_donated=Money.from_decimal(meta.get("_give_form_earnings") or "0", currency),
        )

    @staticmethod
    def _form_levels(meta: dict[str, str], currency: str) -> list[DonationFormLevel]:
        if meta.get("_give_price_option") != "multi":
            price = meta.get("_give_set_price")
            if not price:
                return []
            return [DonationFormLevel(id="0", amount=Money.from_decimal(price, currency), is_default=True)]

        levels = maybe_unserialize(meta.get("_give_donation_levels") or "")
        if not isinstance(levels, list):
            return []
        result = []
        for level in levels:
            if not isinstance(level, dict):
                continue
            level_id = level.get("_give_id")
            if isinstance(level_id, dict):
                level_id = level_id.get("level_id")
            result.append(DonationFormLevel(
                id=_str(level_id),
                amount=Money.from_decimal(level.get("_give_amount") or "0", currency),
                label=_str(level.get("_give_text")),
                is_default=level.get("_give_default") == "default",
            ))
        return result

    # ── API credentials ───────────────────────────────────────────────────────

    def user_id_for_public_key(self, public_key: str) -> Optional[int]:
        """User owning an API public key.

        GiveWP stores the public key itself as the usermeta meta_key, with
        the value ``give_user_public_key``.
        """
        row = self.conn.execute(
            f"SELECT user_id FROM {self._t('usermeta')} "
            f"WHERE meta_key = ? AND meta_value = 'give_user_public_key' LIMIT 1",
            (public_key,),
        ).fetchone()
        if row is None:
            return None
        return _int(row[0]) or None

    def secret_key_for_user(self, user_id: int) -> Optional[str]:
        row = self.conn.execute(
            f"SELECT meta_key FROM {self._t('usermeta')} "
            f"WHERE user_id = ? AND meta_value = 'give_user_secret_key' LIMIT 1",
            (user_id,),
        ).fetchone()
        return row[0] if row else None
