"""
Create default subscription plans

Plans are read from ``settings.PLAN_CONFIG``; existing plans are refreshed to match.
"""

from django.core.management.base import BaseCommand

from billing.apps import ensure_default_plans
from billing.models import Plan


class Command(BaseCommand):

    help = 'Create or refresh the default subscription plans'

    def handle(self, *args, **options):
        result = ensure_default_plans()

        for key in result['created']:
            self.stdout.write(self.style.SUCCESS(f'✓ Created plan: {key}'))
        for key in result['updated']:
            self.stdout.write(self.style.SUCCESS(f'✓ Updated plan: {key}'))

        # Summary
        self.stdout.write('\n' + '=' * 50)
        self.stdout.write('Plan setup completed:')
        self.stdout.write(f'  • Created: {len(result["created"])} plan(s)')
        self.stdout.write(f'  • Updated: {len(result["updated"])} plan(s)')
        self.stdout.write(f'  • Total: {Plan.objects.count()} plan(s)')

        self.stdout.write('\nCurrent plans:')
        for plan in Plan.objects.all().order_by('price'):
            self.stdout.write(f"  • {plan.name} [{plan.key}]: {plan.price}/month")
