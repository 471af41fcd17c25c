"""Seed database with demo products, analytics and videos."""

from __future__ import annotations

import random
from datetime import timedelta

from sqlalchemy import text

from autopilot.db.session import create_engine_from_env
from autopilot.utils.dates import utc_now

# (id, title, daily revenue, videos)
DEMO_PRODUCTS = [
    ("prod-air-fryer", "Compact Air Fryer", 12.0, 6),
    ("prod-desk-lamp", "LED Desk Lamp", 0.02, 4),
    ("prod-yoga-mat", "Cork Yoga Mat", 1.5, 3),
    ("prod-new-kettle", "Gooseneck Kettle", 0.0, 0),
]

DAYS = 14


def main() -> None:
    engine = create_engine_from_env()
    today = utc_now().date()
    rng = random.Random(7)
    with engine.begin() as conn:
        for product_id, title, daily_revenue, videos in DEMO_PRODUCTS:
            conn.execute(
                text(
                    """
                    INSERT INTO products (id, title, status)
                    VALUES (:id, :title, 'ACTIVE')
                    ON CONFLICT (id) DO UPDATE SET title = EXCLUDED.title
                    """
                ),
                {"id": product_id, "title": title},
            )
            for offset in range(DAYS):
                revenue = round(daily_revenue * rng.uniform(0.7, 1.3), 2)
                clicks = rng.randint(5, 60)
                conn.execute(
                    text(
                        """
                        INSERT INTO product_analytics (product_id, date, revenue, clicks, conversions)
                        VALUES (:product_id, :date, :revenue, :clicks, :conversions)
                        ON CONFLICT (product_id, date) DO NOTHING
                        """
                    ),
                    {
                        "product_id": product_id,
                        "date": today - timedelta(days=offset),
                        "revenue": revenue,
                        "clicks": clicks,
                        "conversions": rng.randint(0, max(clicks // 10, 1)),
                    },
                )
            for index in range(videos):
                conn.execute(
                    text(
                        """
                        INSERT INTO videos (id, product_id)
                        VALUES (:id, :product_id)
                        ON CONFLICT (id) DO NOTHING
                        """
                    ),
                    {"id": f"{product_id}-video-{index}", "product_id": product_id},
                )
    print("Seed complete")


if __name__ == "__main__":
    main()
