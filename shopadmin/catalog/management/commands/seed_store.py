"""
Management command to create a demo store with catalog data
"""
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from shopadmin.stores.models import Store
from shopadmin.catalog.models import Billboard, Category, Size, Color, Product, Image

User = get_user_model()

BILLBOARDS = [
    ('Summer Sale', 'https://images.example.com/billboards/summer-sale.jpg'),
    ('New Arrivals', 'https://images.example.com/billboards/new-arrivals.jpg'),
]

CATEGORIES = [
    ('Shirts', 'Summer Sale'),
    ('Shoes', 'New Arrivals'),
]

SIZES = [
    ('Small', 'S'),
    ('Medium', 'M'),
    ('Large', 'L'),
]

COLORS = [
    ('Black', '#000000'),
    ('White', '#FFFFFF'),
    ('Navy', '#1F2A44'),
]

PRODUCTS = [
    ('Linen Shirt', 'Shirts', 'Medium', 'White', '39.90', True),
    ('Oxford Shirt', 'Shirts', 'Large', 'Navy', '49.00', False),
    ('Canvas Sneaker', 'Shoes', 'Medium', 'Black', '79.50', True),
]


class Command(BaseCommand):
    help = "Creates a demo store with billboards, categories, sizes, colors and products"

    def add_arguments(self, parser):
        parser.add_argument('owner', help='Username of the store owner')
        parser.add_argument(
            '--name',
            default='Demo Store',
            help='Store name (default: Demo Store)',
        )

    def handle(self, *args, **options):
        try:
            owner = User.objects.get(username=options['owner'])
        except User.DoesNotExist:
            raise CommandError(f"User '{options['owner']}' does not exist")

        with transaction.atomic():
            store = Store.objects.create(name=options['name'], owner=owner)

            billboards = {
                label: Billboard.objects.create(store=store, label=label, image_url=url)
                for label, url in BILLBOARDS
            }
            categories = {
                name: Category.objects.create(store=store, name=name, billboard=billboards[billboard])
                for name, billboard in CATEGORIES
            }
            sizes = {
                name: Size.objects.create(store=store, name=name, value=value)
                for name, value in SIZES
            }
            colors = {
                name: Color.objects.create(store=store, name=name, value=value)
                for name, value in COLORS
            }

            for name, category, size, color, price, featured in PRODUCTS:
                product = Product.objects.create(
                    store=store,
                    name=name,
                    category=categories[category],
                    size=sizes[size],
                    color=colors[color],
                    price=Decimal(price),
                    is_featured=featured,
                )
                slug = name.lower().replace(' ', '-')
                Image.objects.create(product=product, url=f"https://images.example.com/products/{slug}.jpg")

        self.stdout.write(self.style.SUCCESS(
            f"Created store '{store.name}' (id {store.pk}) with {len(billboards)} billboards, "
            f"{len(categories)} categories, {len(sizes)} sizes, {len(colors)} colors "
            f"and {len(PRODUCTS)} products."
        ))
