"""
Pytest fixtures for the GiveWP enhanced API tests.

Builds a small GiveWP-shaped SQLite database (``wp_`` prefix) in tmp_path:

    donation 42   donor 7, form 3, no subscription          (end-to-end case)
    donation 43   donor 7, form 3, subscription 5
    donation 44   donor 99 (does not exist), form 3
    donation 45   donor 7, form 9 (form without a campaign)
    post 50       a WordPress page, not a donation
    form 3        multi-level form in campaign 1
    form 9        single-price form, no campaign
    donor 7       with plain and PHP-serialized custom fields
    subscription 5, campaign 1 (amount goal 1000)
    user 1        API keys PUBLIC_KEY / SECRET_KEY
    user 2        public key without a secret
"""

import hashlib
import sqlite3
import sys
from pathlib import Path

import phpserialize
import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from fastapi.testclient import TestClient  # noqa: E402

from give_api.app import create_app  # noqa: E402
from give_store.config import AppConfig  # noqa: E402
from give_store.queries import GiveStore  # noqa: E402

PUBLIC_KEY = "3c9a5e0f2b7d4e6a8c1f0b2d4e6a8c1f"
SECRET_KEY = "9f8e7d6c5b4a39281706f5e4d3c2b1a0"
TOKEN = hashlib.md5((SECRET_KEY + PUBLIC_KEY).encode()).hexdigest()
ORPHAN_PUBLIC_KEY = "0000aaaa1111bbbb2222cccc3333dddd"

SCHEMA = """
    CREATE TABLE wp_posts (
        ID INTEGER PRIMARY KEY,
        post_title TEXT DEFAULT '',
        post_status TEXT,
        post_type TEXT,
        post_date TEXT,
        post_modified TEXT,
        post_parent INTEGER DEFAULT 0
    );
    CREATE TABLE wp_give_donationmeta (
        meta_id INTEGER PRIMARY KEY AUTOINCREMENT,
        donation_id INTEGER, meta_key TEXT, meta_value TEXT
    );
    CREATE TABLE wp_give_formmeta (
        meta_id INTEGER PRIMARY KEY AUTOINCREMENT,
        form_id INTEGER, meta_key TEXT, meta_value TEXT
    );
    CREATE TABLE wp_give_donors (
        id INTEGER PRIMARY KEY,
        user_id INTEGER DEFAULT 0,
        email TEXT, name TEXT,
        purchase_value TEXT, purchase_count INTEGER,
        payment_ids TEXT, date_created TEXT
    );
    CREATE TABLE wp_give_donormeta (
        meta_id INTEGER PRIMARY KEY AUTOINCREMENT,
        donor_id INTEGER, meta_key TEXT, meta_value TEXT
    );
    CREATE TABLE wp_give_subscriptions (
        id INTEGER PRIMARY KEY,
        customer_id INTEGER, period TEXT, frequency INTEGER,
        initial_amount TEXT, recurring_amount TEXT, recurring_fee_amount TEXT,
        bill_times INTEGER, transaction_id TEXT, parent_payment_id INTEGER,
        product_id INTEGER, created TEXT, expiration TEXT, status TEXT,
        profile_id TEXT
    );
    CREATE TABLE wp_give_campaigns (
        id INTEGER PRIMARY KEY,
        campaign_page_id INTEGER, form_id INTEGER, campaign_type TEXT,
        campaign_title TEXT, campaign_url TEXT, short_desc TEXT, long_desc TEXT,
        campaign_logo TEXT, campaign_image TEXT, primary_color TEXT,
        secondary_color TEXT, campaign_goal INTEGER, goal_type TEXT,
        status TEXT, start_date TEXT, end_date TEXT, date_created TEXT
    );
    CREATE TABLE wp_give_campaign_forms (campaign_id INTEGER, form_id INTEGER);
    CREATE TABLE wp_usermeta (
        umeta_id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER, meta_key TEXT, meta_value TEXT
    );
    CREATE TABLE wp_options (
        option_id INTEGER PRIMARY KEY AUTOINCREMENT,
        option_name TEXT, option_value TEXT
    );
"""


def php(value) -> str:
    """PHP serialize() a Python value, as WordPress stores meta."""
    return phpserialize.dumps(value).decode("utf-8")


def _donation_meta(donation_id, total, donor_id, form_id, **extra):
    meta = {
        "_give_payment_total": total,
        "_give_payment_currency": "USD",
        "_give_payment_donor_id": str(donor_id),
        "_give_payment_form_id": str(form_id),
        "_give_payment_form_title": "Annual Appeal" if form_id == 3 else "Quick Give",
        "_give_payment_gateway": "stripe",
        "_give_payment_mode": "live",
        "_give_payment_purchase_key": f"pk{donation_id}",
        "_give_payment_donor_ip": "203.0.113.9",
        "_give_payment_donor_email": "jane@example.org",
        "_give_donor_billing_first_name": "Jane",
        "_give_donor_billing_last_name": "Doe",
        "_give_donor_billing_country": "GB",
        "_give_donor_billing_city": "Leeds",
    }
    meta.update(extra)
    return [(donation_id, k, v) for k, v in meta.items()]


def build_givewp_db(path: Path) -> Path:
    """Write the fixture database described in the module docstring."""
    conn = sqlite3.connect(str(path))
    conn.executescript(SCHEMA)

    conn.executemany(
        "INSERT INTO wp_posts (ID, post_title, post_status, post_type, post_date, post_modified) "
        "VALUES (?, ?, ?, ?, ?, ?)",
        [
            (3, "Annual Appeal", "publish", "give_forms", "2023-12-01 08:00:00", "2024-01-02 08:00:00"),
            (9, "Quick Give", "publish", "give_forms", "2023-12-02 08:00:00", "2023-12-02 08:00:00"),
            (42, "", "publish", "give_payment", "2024-03-01 12:00:00", "2024-03-01 12:05:00"),
            (43, "", "publish", "give_payment", "2024-02-01 10:00:00", "2024-02-01 10:00:00"),
            (44, "", "publish", "give_payment", "2024-03-02 09:00:00", "2024-03-02 09:00:00"),
            (45, "", "pending", "give_payment", "2024-03-03 09:00:00", "2024-03-03 09:00:00"),
            (50, "About us", "publish", "page", "2023-01-01 00:00:00", "2023-01-01 00:00:00"),
        ],
    )

    meta_rows = []
    meta_rows += _donation_meta(42, "10.50", 7, 3)
    meta_rows += _donation_meta(43, "50.00", 7, 3, subscription_id="5", _give_subscription_payment="1")
    meta_rows += _donation_meta(44, "20.00", 99, 3)
    meta_rows += _donation_meta(45, "5.00", 7, 9)
    conn.executemany(
        "INSERT INTO wp_give_donationmeta (donation_id, meta_key, meta_value) VALUES (?, ?, ?)",
        meta_rows,
    )

    levels = [
        {"_give_id": {"level_id": "0"}, "_give_amount": "10.000000", "_give_text": "Bronze"},
        {"_give_id": {"level_id": "1"}, "_give_amount": "25.000000", "_give_text": "Silver",
         "_give_default": "default"},
    ]
    conn.executemany(
        "INSERT INTO wp_give_formmeta (form_id, meta_key, meta_value) VALUES (?, ?, ?)",
        [
            (3, "_give_price_option", "multi"),
            (3, "_give_donation_levels", php(levels)),
            (3, "_give_form_earnings", "80.50"),
            (3, "_give_form_sales", "3"),
            (3, "_give_goal_option", "enabled"),
            (9, "_give_price_option", "set"),
            (9, "_give_set_price", "5.00"),
        ],
    )

    conn.execute(
        "INSERT INTO wp_give_donors (id, user_id, email, name, purchase_value, purchase_count, "
        "payment_ids, date_created) VALUES (7, 0, 'jane@example.org', 'Jane Doe', '60.50', 2, "
        "'42,43', '2024-01-05 09:30:00')"
    )
    conn.executemany(
        "INSERT INTO wp_give_donormeta (donor_id, meta_key, meta_value) VALUES (?, ?, ?)",
        [
            (7, "_give_donor_first_name", "Jane"),
            (7, "_give_donor_last_name", "Doe"),
            (7, "additional_email", "jane.alt@example.org"),
            (7, "newsletter", "yes"),
            (7, "interests", php(["education", "health"])),
            (7, "gift_aid", php({"status": "accepted", "declared": "2024-01-05"})),
        ],
    )

    conn.execute(
        "INSERT INTO wp_give_subscriptions VALUES (5, 7, 'month', 1, '50.00', '50.00', '0', 0, "
        "'ch_1', 43, 3, '2024-02-01 10:00:00', '2024-03-01 10:00:00', 'active', 'sub_123')"
    )

    conn.execute(
        "INSERT INTO wp_give_campaigns VALUES (1, 11, 3, 'core', 'Spring Campaign', "
        "'https://example.org/spring', 'Short', 'Long', '', '', '#0b72d9', '#27ae60', "
        "1000, 'amount', 'active', '2024-01-01 00:00:00', NULL, '2023-12-01 08:00:00')"
    )
    conn.execute("INSERT INTO wp_give_campaign_forms VALUES (1, 3)")

    conn.executemany(
        "INSERT INTO wp_usermeta (user_id, meta_key, meta_value) VALUES (?, ?, ?)",
        [
            (1, PUBLIC_KEY, "give_user_public_key"),
            (1, SECRET_KEY, "give_user_secret_key"),
            (1, "nickname", "admin"),
            (2, ORPHAN_PUBLIC_KEY, "give_user_public_key"),
        ],
    )
    conn.execute(
        "INSERT INTO wp_options (option_name, option_value) VALUES ('give_settings', ?)",
        (php({"currency": "USD", "currency_position": "before"}),),
    )
    conn.commit()
    conn.close()
    return path


@pytest.fixture()
def givewp_db(tmp_path):
    """Path to a freshly built GiveWP fixture database."""
    return build_givewp_db(tmp_path / "givewp.sqlite")


@pytest.fixture()
def conn(givewp_db):
    connection = sqlite3.connect(str(givewp_db))
    connection.row_factory = sqlite3.Row
    yield connection
    connection.close()


@pytest.fixture()
def config(givewp_db):
    return AppConfig(db_path=givewp_db)


@pytest.fixture()
def store(conn, config):
    return GiveStore(conn, config)


@pytest.fixture()
def client(givewp_db):
    with TestClient(create_app(db_path=givewp_db, config=AppConfig())) as c:
        yield c


@pytest.fixture()
def credentials():
    return {"key": PUBLIC_KEY, "token": TOKEN}
