#!/usr/bin/env python3
"""Seed script to create Product rows from the pricing plan catalog"""
import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy.orm import Session
from app.db.session import SessionLocal
from app.services.product_seed import seed_products_from_plans


def seed_products():
    db: Session = SessionLocal()
    try:
        created = seed_products_from_plans(db)
        print(f"Created {created} product(s)")
    except Exception as e:
        db.rollback()
        print(f"Error seeding products: {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    seed_products()
