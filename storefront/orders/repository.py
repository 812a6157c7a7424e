"""
Accès aux données pour la feature 'orders' (PostgreSQL, psycopg).

Toutes les fonctions reçoivent une connexion ouverte par storefront.infra.db.transaction():
la transaction (commit/rollback) est pilotée par l'appelant.
"""
from typing import Any, Dict, List, Optional, Sequence

from psycopg.types.json import Jsonb

# module storefront.orders.repository
def find_contact(conn, tenant_id: str, email: str) -> Optional[dict]:
    return conn.execute(
        "SELECT id FROM crm.contacts WHERE customer_id = %s AND lower(email) = lower(%s) LIMIT 1",
        (tenant_id, email),
    ).fetchone()

def insert_contact(conn, tenant_id: str, contact: Dict[str, Any]) -> Optional[dict]:
    """
    Crée le contact (source 'checkout', statut 'active', type 'customer').
    - Retourne None si un contact concurrent a été créé entre-temps (ON CONFLICT)
    """
    return conn.execute(
        """
        INSERT INTO crm.contacts
            (customer_id, email, first_name, last_name, phone, company, source, status, contact_type)
        VALUES (%s, %s, %s, %s, %s, %s, 'checkout', 'active', 'customer')
        ON CONFLICT (customer_id, lower(email)) DO NOTHING
        RETURNING id
        """,
        (
            tenant_id,
            contact["email"],
            contact.get("first_name"),
            contact.get("last_name"),
            contact.get("phone"),
            contact.get("company"),
        ),
    ).fetchone()

def fetch_active_products(conn, tenant_id: str, product_ids: Sequence[str]) -> List[dict]:
    return conn.execute(
        """
        SELECT id, name, price, prices, billing_cycle
        FROM store.products
        WHERE customer_id = %s AND id = ANY(%s::uuid[]) AND status = 'active'
        """,
        (tenant_id, list(product_ids)),
    ).fetchall()

def allocate_order_number(conn, tenant_id: str) -> str:
    """
    Prochain numéro de commande du tenant (max numérique + 1, 1000 pour la première).
    - Verrou consultatif scopé à la transaction: deux créations concurrentes sont sérialisées
    """
    conn.execute("SELECT pg_advisory_xact_lock(hashtext(%s))", (f"order_number:{tenant_id}",))
    row = conn.execute(
        """
        SELECT COALESCE(MAX(order_number::bigint), 999) + 1 AS next_number
        FROM store.orders
        WHERE customer_id = %s AND order_number ~ '^[0-9]+$'
        """,
        (tenant_id,),
    ).fetchone()
    return str(row["next_number"])

def insert_order(conn, order: Dict[str, Any]) -> dict:
    return conn.execute(
        """
        INSERT INTO store.orders
            (customer_id, contact_id, order_number, subtotal, total_amount, currency,
             financial_status, fulfillment_status, customer_email, customer_phone,
             customer_name, payment_method, metadata)
        VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
        RETURNING id, order_number
        """,
        (
            order["customer_id"],
            order["contact_id"],
            order["order_number"],
            order["subtotal"],
            order["total_amount"],
            order["currency"],
            order["financial_status"],
            order["fulfillment_status"],
            order["customer_email"],
            order.get("customer_phone"),
            order["customer_name"],
            order["payment_method"],
            Jsonb(order.get("metadata") or {}),
        ),
    ).fetchone()

def insert_order_item(conn, order_id: str, item: Dict[str, Any]) -> None:
    conn.execute(
        """
        INSERT INTO store.order_items
            (order_id, product_id, product_name, price, quantity, subtotal, total_amount, billing_cycle)
        VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
        """,
        (
            order_id,
            item["product_id"],
            item["product_name"],
            item["price"],
            item["quantity"],
            item["subtotal"],
            item["total_amount"],
            item.get("billing_cycle"),
        ),
    )

def get_order(conn, order_id: str) -> Optional[dict]:
    return conn.execute(
        """
        SELECT id, customer_id, order_number, subtotal, total_amount, currency,
               financial_status, fulfillment_status, customer_email, customer_name,
               payment_method, metadata, created_at
        FROM store.orders
        WHERE id = %s
        """,
        (order_id,),
    ).fetchone()

def list_order_items(conn, order_id: str) -> List[dict]:
    return conn.execute(
        """
        SELECT product_id, product_name, price, quantity, subtotal, billing_cycle
        FROM store.order_items
        WHERE order_id = %s
        ORDER BY id
        """,
        (order_id,),
    ).fetchall()

def update_payment_status(
    conn,
    order_id: str,
    financial_status: str,
    payment_method: str,
    metadata_patch: Dict[str, Any],
) -> bool:
    """
    Passe la commande à `financial_status` et fusionne metadata_patch dans metadata.
    - Sans effet (False) si la commande a déjà ce statut: écriture idempotente
    """
    row = conn.execute(
        """
        UPDATE store.orders
        SET financial_status = %s,
            payment_method = %s,
            metadata = COALESCE(metadata, '{}'::jsonb) || %s,
            updated_at = now()
        WHERE id = %s AND financial_status <> %s
        RETURNING id
        """,
        (financial_status, payment_method, Jsonb(metadata_patch), order_id, financial_status),
    ).fetchone()
    return row is not None