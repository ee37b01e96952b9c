"""
Create a staff login with a role.

Usage:
    python manage.py create_staff_user jane --role pharmacy --password secret
    python manage.py create_staff_user admin --role admin --password secret --unapproved
"""

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from inventory.models import StaffProfile


class Command(BaseCommand):
    help = 'Create a staff user with a role profile (approved unless --unapproved)'

    def add_arguments(self, parser):
        parser.add_argument('username')
        parser.add_argument('--password', required=True)
        parser.add_argument('--role', choices=StaffProfile.Role.values, default=StaffProfile.Role.STAFF)
        parser.add_argument('--email', default='')
        parser.add_argument('--department', default='')
        parser.add_argument('--unapproved', action='store_true', help='Leave the account pending approval')

    def handle(self, *args, **options):
        User = get_user_model()
        username = options['username']

        if User.objects.filter(username=username).exists():
            raise CommandError(f'User "{username}" already exists')

        with transaction.atomic():
            user = User.objects.create_user(
                username=username,
                email=options['email'],
                password=options['password'],
                is_staff=options['role'] == StaffProfile.Role.ADMIN,
            )
            StaffProfile.objects.create(
                user=user,
                role=options['role'],
                department=options['department'],
                approved=not options['unapproved'],
            )

        state = 'pending approval' if options['unapproved'] else 'approved'
        self.stdout.write(self.style.SUCCESS(f'✓ Created {options["role"]} user "{username}" ({state})'))
