"""
Demo Data Seeder for the TorunHut storefront

Fills a development database with a Faker-generated catalog (tiered and
preorder products included), user profiles and orders. Orders go through
the real order builder, so their totals, stock decrements and short ids
are exactly what checkout would produce.
"""
import os
import sys
import random
from decimal import Decimal

# Add the project root to the path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Setup Django
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings.base')

import django
django.setup()

from faker import Faker
from apps.accounts.identity import AuthenticatedUser, IdentityClaims
from apps.accounts.models import UserProfile
from apps.catalog.models import Product, SiteSettings
from apps.core.exceptions import StorefrontException
from apps.orders.builder import SubmittedLine, build_order
from apps.orders.lifecycle import update_order_status
from apps.orders.models import Order
from apps.pricing.tiers import resolve_unit_price

fake = Faker()

SIZES = ['S', 'M', 'L', 'XL', 'XXL']
DEPARTMENTS = ['CSE', 'EEE', 'ME', 'CE', 'URP', 'ARCH', 'PME']
HALLS = ['Shaheed Tareq Huda Hall', 'Sheikh Russel Hall', 'Shamsen Nahar Khan Hall', 'Bangabandhu Hall']
DISTRICTS = ['Dhaka', 'Chattogram', 'Sylhet', 'Rajshahi', 'Khulna', 'Cumilla']


def generate_users(count=30):
    """Generate user profiles; the first two get staff roles."""
    print(f"Generating {count} users...")
    users = []

    for i in range(count):
        role = UserProfile.ROLE_USER
        if i == 0:
            role = UserProfile.ROLE_ADMIN
        elif i == 1:
            role = UserProfile.ROLE_SUBADMIN

        user = UserProfile.objects.create(
            uid=fake.unique.bothify(text='demo-????????????????'),
            email=fake.unique.email(),
            display_name=fake.name(),
            role=role,
        )
        users.append(user)

    print(f"Created {len(users)} users")
    return users


def generate_products(count=24):
    """Generate products, roughly a third with tier tables and a sixth on preorder."""
    print(f"Generating {count} products...")

    product_templates = [
        ('Department Tee', 'tshirt', 350, 550),
        ('Batch Tee', 'tshirt', 400, 600),
        ('Fest Hoodie', 'hoodie', 900, 1400),
        ('Zip Hoodie', 'hoodie', 1100, 1600),
        ('Football Jersey', 'jersey', 600, 900),
        ('Cricket Jersey', 'jersey', 650, 950),
    ]

    products = []
    while len(products) < count:
        name_base, category, min_price, max_price = random.choice(product_templates)
        price = Decimal(random.randrange(min_price, max_price, 10))

        tiered_pricing = []
        if random.random() < 0.35:
            tiered_pricing = [
                {'quantity': 3, 'price': str(price - 30)},
                {'quantity': 10, 'price': str(price - 80)},
            ]

        discounted_price = None
        if not tiered_pricing and random.random() < 0.3:
            discounted_price = price - 50

        is_preorder = random.random() < 0.17
        product = Product.objects.create(
            name=f"{name_base} {fake.color_name()}",
            category=category,
            description=fake.paragraph(nb_sentences=3),
            price=price,
            discounted_price=discounted_price,
            tiered_pricing=tiered_pricing,
            stock=random.randint(0, 200),
            image=f"https://picsum.photos/seed/{fake.uuid4()}/600/600",
            sizes=SIZES,
            colors=[fake.color_name() for _ in range(random.randint(1, 3))],
            tags=[category, name_base.split()[0].lower()],
            featured=random.random() < 0.2,
            is_preorder=is_preorder,
            preorder_payment_type=random.choice(['half', 'full']),
            require_custom_name_number=is_preorder and category == 'jersey',
        )
        products.append(product)

    print(f"Created {len(products)} products")
    return products


def _shipping_details(user, zone):
    details = {
        'name': user.display_name,
        'phone': fake.numerify(text='017########'),
        'email': user.email,
    }
    if zone == 'local':
        details.update({
            'studentId': fake.numerify(text='19####'),
            'department': random.choice(DEPARTMENTS),
            'hallName': random.choice(HALLS),
        })
    else:
        details.update({
            'district': random.choice(DISTRICTS),
            'address': fake.street_address(),
        })
    return details


def _cart_lines(products):
    """One to three products, sometimes split across two sizes."""
    lines = []
    for product in random.sample(products, k=min(len(products), random.randint(1, 3))):
        quantities = [random.randint(1, 3)]
        if random.random() < 0.3:
            quantities.append(random.randint(1, 2))

        family_quantity = sum(quantities)
        unit_price = resolve_unit_price(
            product.tiered_pricing, product.discounted_price, product.price, family_quantity
        )
        for index, quantity in enumerate(quantities):
            line_id = str(product.id) if index == 0 else f"{product.id}_{fake.uuid4()[:12]}"
            lines.append(SubmittedLine(
                product_id=line_id,
                original_product_id=str(product.id) if index else None,
                name=product.name,
                price=unit_price,
                quantity=quantity,
                size=random.choice(SIZES),
                image=product.image,
                custom_name=fake.first_name() if product.require_custom_name_number else None,
                custom_number=str(random.randint(1, 99)) if product.require_custom_name_number else None,
            ))
    return lines


def generate_orders(users, products, count=60):
    """Place orders through the order builder and advance some of them."""
    print(f"Generating {count} orders...")
    orders = []
    in_stock = [product for product in products if product.stock > 10]
    if not in_stock:
        print("No products with stock, skipping orders")
        return orders

    for _ in range(count):
        user = random.choice(users)
        zone = random.choice(['local', 'local', 'national'])
        payment_method = random.choice(['COD', 'PAY_NOW'])
        payment_info = None
        if payment_method == 'PAY_NOW':
            payment_info = {
                'provider': random.choice(['bKash', 'Nagad', 'Rocket']),
                'paymentNumber': fake.numerify(text='018########'),
                'trxId': fake.bothify(text='??#?#??##?').upper(),
            }

        identity = AuthenticatedUser(IdentityClaims(uid=user.uid, email=user.email, name=user.display_name))
        try:
            order = build_order(
                lines=_cart_lines(in_stock),
                shipping_zone=zone,
                shipping_details=_shipping_details(user, zone),
                payment_method=payment_method,
                payment_info=payment_info,
                user=identity,
            )
        except StorefrontException as e:
            print(f"  skipped order: {e.message}")
            continue

        path = random.choices(
            [[], ['processing'], ['processing', 'shipped'], ['processing', 'shipped', 'delivered'], ['cancelled']],
            weights=[30, 20, 20, 20, 10],
        )[0]
        for status in path:
            tracking = fake.bothify(text='TRK########') if status == 'shipped' else None
            order = update_order_status(str(order.id), status, tracking_number=tracking)
        orders.append(order)

    print(f"Created {len(orders)} orders")
    return orders


def clear_all_data():
    """Clear all existing data."""
    print("Clearing existing data...")

    Order.objects.all().delete()
    Product.objects.all().delete()
    UserProfile.objects.all().delete()
    SiteSettings.objects.all().delete()

    print("All data cleared")


def main():
    """Main function to seed all data."""
    print("\n" + "="*60)
    print("TorunHut Demo Data Seeder")
    print("="*60 + "\n")

    clear_all_data()

    SiteSettings.load()
    users = generate_users(30)
    products = generate_products(24)
    orders = generate_orders(users, products, 60)

    print("\n" + "="*60)
    print("Seeding Complete!")
    print("="*60)
    print(f"\nSummary:")
    print(f"  - Users: {len(users)}")
    print(f"  - Products: {len(products)}")
    print(f"  - Orders: {len(orders)}")
    print()


if __name__ == '__main__':
    main()
