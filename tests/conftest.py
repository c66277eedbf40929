"""Shared fixtures for schemaguard tests."""

import pytest

from schemaguard.schema.models import SchemaMetadata, Table
from schemaguard.schema.parser import extract_schema

CANONICAL_DDL = """
CREATE TABLE users (id integer, username varchar(50), CONSTRAINT users_pkey PRIMARY KEY (id));
CREATE TABLE orders (id integer PRIMARY KEY, user_id integer, FOREIGN KEY (user_id) REFERENCES users (id));
"""

SAMPLE_DUMP = """
-- This is a sample dump
CREATE TABLE public.users (
    id integer NOT NULL,
    username character varying(50) NOT NULL,
    email character varying(255) NOT NULL,
    created_at timestamp without time zone DEFAULT CURRENT_TIMESTAMP,
    CONSTRAINT users_pkey PRIMARY KEY (id)
);

CREATE TABLE orders (
    id integer PRIMARY KEY,
    user_id integer,
    total decimal(10,2),
    FOREIGN KEY (user_id) REFERENCES users (id)
);

ALTER TABLE ONLY public.products ADD CONSTRAINT products_category_id_fkey FOREIGN KEY (category_id) REFERENCES public.categories(id);
"""


@pytest.fixture
def canonical_ddl():
    return CANONICAL_DDL


@pytest.fixture
def sample_dump():
    return SAMPLE_DUMP


@pytest.fixture
def shop_schema():
    """Schema used by validator tests."""
    return SchemaMetadata(
        tables=[
            Table(name="users", columns=["id", "username", "email", "created_at"]),
            Table(name="orders", columns=["id", "user_id", "total", "created_at"]),
            Table(name="t", columns=["x", "y"]),
        ],
        relations=["orders.user_id -> users.id"],
    )


@pytest.fixture
def extracted_schema(sample_dump):
    return extract_schema(sample_dump)
