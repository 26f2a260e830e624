from decimal import Decimal
from app.database import SessionLocal, engine
from app import models, utils

models.Base.metadata.create_all(bind=engine)

# Initialize DB Session
db = SessionLocal()

DEMO_USER = {"username": "demo", "email": "demo@handicraft.test", "password": "demo1234"}
DEMO_ORDER_TOTALS = [Decimal("1000"), Decimal("2450.50"), Decimal("125")]


def seed_data():
    try:
        # --- 1. CLEAN SLATE ---
        print("Clearing old orders...")
        db.query(models.Order).delete()
        db.commit()
    except Exception as e:
        db.rollback()
        print(f"Error during cleanup: {e}")
        return

    # --- 2. DEMO USER ---
    user = db.query(models.User).filter(models.User.username == DEMO_USER["username"]).first()
    if not user:
        user = models.User(
            username=DEMO_USER["username"],
            email=DEMO_USER["email"],
            hashed_password=utils.hash_password(DEMO_USER["password"]),
        )
        db.add(user)
        db.commit()
        db.refresh(user)

    # --- 3. UNPAID ORDERS ---
    orders = [models.Order(user_id=user.id, total_price=total) for total in DEMO_ORDER_TOTALS]
    db.add_all(orders)
    db.commit()

    print(f"Login as '{DEMO_USER['username']}' / '{DEMO_USER['password']}'")
    for order in orders:
        print(f"  order {order.id}  total {order.total_price}")


if __name__ == "__main__":
    try:
        seed_data()
    finally:
        db.close()
