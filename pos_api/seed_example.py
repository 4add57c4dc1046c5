from decimal import Decimal

from sqlalchemy import select

from pos_api.db import SessionLocal, init_db
from pos_api.models import Category, Product, Setting, User, UserRole
from pos_api.security.passwords import hash_password
from pos_api.services.setting_service import encode_value

MENU = {
    'Pollos Asados': [
        ('Pollo Entero', '8.50'),
        ('Pollo Asado Entero con Papas', '11.80'),
        ('Pollo Asado Entero con Papas Familiar', '14.00'),
        ('Medio Pollo', '4.40'),
        ('Medio Pollo con Papas Fritas', '8.00'),
    ],
    'Costillas y Patas Asadas': [
        ('Medio Costillar', '13.50'),
        ('Costillar Entero', '26.00'),
        ('Pata Asada (1Kg)', '20.00'),
        ('Pata Asada Entera', '130.00'),
    ],
    'Guarniciones': [
        ("Papas Fritas 'Guantanamera'", '3.50'),
        ('Papas Fritas Familiar', '5.50'),
        ('Papas Campesinas', '3.90'),
        ('Croquetas de Pollo', '5.00'),
        ('Pan Horneado', '0.80'),
    ],
    'Quesadillas y Burritos': [
        ('Quesadilla de Pollo', '6.00'),
        ('Quesadilla de Pollo con refresco', '6.80'),
        ('Burrito de Pollo', '5.00'),
        ('Burrito de Pollo con refresco', '5.80'),
    ],
    'Platos Combinados': [
        ('Menu Pollo', '14.50'),
        ('Menu Medio Pollo', '8.80'),
        ('Menu Burrito', '7.50'),
    ],
    'Mojos y Salsas': [
        ('Mojo Rojo', '1.20'),
        ('Mojo Verde', '1.20'),
        ('Alioli Tradicional', '1.20'),
    ],
    'Bebidas': [
        ('Coca-Cola Original (33cl)', '1.50'),
        ('Coca-Cola Zero (33cl)', '1.50'),
        ('Fanta Naranja (33cl)', '1.50'),
        ('Fanta Limón (33cl)', '1.50'),
        ('Sprite (33cl)', '1.50'),
        ('Coca-Cola Original (1,5L)', '3.00'),
        ('Agua Mineral Natural (33cl)', '1.00'),
        ('Aquarius de Naranja (33cl)', '1.80'),
        ('Cerveza Dorada', '1.70'),
        ('Cerveza Heineken', '1.50'),
    ],
}

# Days are numbered from Sunday=0.
WEEKLY_SCHEDULE = [
    {'day': 0, 'name': 'Domingo', 'open': '09:00', 'close': '17:00', 'enabled': True},
    {'day': 1, 'name': 'Lunes', 'open': '09:00', 'close': '18:00', 'enabled': True},
    {'day': 2, 'name': 'Martes', 'open': '09:00', 'close': '17:00', 'enabled': False},
    {'day': 3, 'name': 'Miércoles', 'open': '09:00', 'close': '17:00', 'enabled': False},
    {'day': 4, 'name': 'Jueves', 'open': '09:00', 'close': '18:00', 'enabled': True},
    {'day': 5, 'name': 'Viernes', 'open': '09:00', 'close': '18:00', 'enabled': True},
    {'day': 6, 'name': 'Sábado', 'open': '09:00', 'close': '17:00', 'enabled': True},
]

DEFAULT_SETTINGS = {
    'orders_enabled': True,
    'prep_time': 15,
    'store_name': 'Guantanamera',
    'store_address': 'C. Castro, 7, 38611 San Isidro, Santa Cruz de Tenerife',
    'store_phone': '+34 922 17 30 39',
    'weekly_schedule': WEEKLY_SCHEDULE,
}


def seed() -> None:
    init_db()
    with SessionLocal() as db:
        for category_name, items in MENU.items():
            category = db.execute(select(Category).where(Category.name == category_name)).scalar_one_or_none()
            if not category:
                category = Category(name=category_name)
                db.add(category)
                db.flush()

            for name, price in items:
                product = db.execute(select(Product).where(Product.name == name)).scalar_one_or_none()
                if not product:
                    db.add(Product(name=name, price=Decimal(price), category_id=category.id, active=True))

        existing_keys = set(db.execute(select(Setting.key)).scalars())
        for key, value in DEFAULT_SETTINGS.items():
            if key in existing_keys:
                continue
            encoded, value_type = encode_value(value)
            db.add(Setting(key=key, value=encoded, type=value_type))

        admin = db.execute(select(User).where(User.email == 'admin@example.com')).scalar_one_or_none()
        if not admin:
            db.add(
                User(
                    email='admin@example.com',
                    name='Admin',
                    password_hash=hash_password('adminpass'),
                    role=UserRole.ADMIN,
                    active=True,
                )
            )

        db.commit()


if __name__ == '__main__':
    seed()
    print('Seed data inserted/verified.')
    print('Admin login: admin@example.com / adminpass')
