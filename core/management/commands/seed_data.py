import random
from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from core.models import Barangay, Tag
from projects.models import Comment, Project, Reaction, Update
from projects.state import derive_from_update_progress

User = get_user_model()

BARANGAYS = ["San Isidro", "Poblacion", "Santa Cruz", "Bagong Silang", "Malinis"]
TAGS = ["infrastructure", "health", "education", "environment", "livelihood", "disaster-preparedness"]

PROJECTS = [
    {
        "title": "Drainage Canal Rehabilitation",
        "description": "Clearing and widening the main drainage canal before the rainy season.",
        "objectives": "Reduce street flooding along the national road.",
        "budget": Decimal("450000.00"),
        "tags": ["infrastructure", "disaster-preparedness"],
        "progress": [20, 55, 80],
    },
    {
        "title": "Community Vegetable Garden",
        "description": "Converting the vacant lot beside the covered court into a shared garden.",
        "objectives": "Supply the feeding program with fresh vegetables.",
        "budget": Decimal("60000.00"),
        "tags": ["livelihood", "environment"],
        "progress": [30, 100],
    },
    {
        "title": "Barangay Health Center Repainting",
        "description": "Repainting and minor repairs of the health center waiting area.",
        "objectives": "Cleaner, safer space for prenatal check-ups.",
        "budget": Decimal("85000.00"),
        "tags": ["health", "infrastructure"],
        "progress": [],
    },
]


class Command(BaseCommand):
    help = "Seeds the database with barangays, tags, users and sample projects with updates"

    @transaction.atomic
    def handle(self, *args, **options):
        self.stdout.write("🌱 Seeding data...")

        # 1. Reference data
        barangays = {name: Barangay.objects.get_or_create(name=name)[0] for name in BARANGAYS}
        tags = {name: Tag.objects.get_or_create(name=name)[0] for name in TAGS}
        self.stdout.write(f"Barangays: {len(barangays)}, tags: {len(tags)}")

        # 2. Users
        admin, _ = User.objects.get_or_create(
            username="admin", defaults={"email": "admin@example.com", "role": "admin", "is_staff": True}
        )
        if not admin.check_password("admin"):
            admin.set_password("admin")
            admin.save()

        captain, _ = User.objects.get_or_create(
            username="captain",
            defaults={"email": "captain@example.com", "role": "barangay", "barangay": barangays["Poblacion"]},
        )
        captain.set_password("password")
        captain.save()

        resident, _ = User.objects.get_or_create(
            username="resident",
            defaults={"email": "resident@example.com", "role": "user", "barangay": barangays["San Isidro"]},
        )
        resident.set_password("password")
        resident.save()

        # 3. Projects with updates
        today = timezone.localdate()
        for data in PROJECTS:
            project, created = Project.objects.get_or_create(
                title=data["title"],
                defaults={
                    "description": data["description"],
                    "objectives": data["objectives"],
                    "budget": data["budget"],
                    "start_date": today - timedelta(days=random.randint(10, 60)),
                    "due_date": today + timedelta(days=random.randint(30, 120)),
                    "created_by": captain,
                },
            )
            if not created:
                self.stdout.write(f"Skipped existing project: {project.title}")
                continue

            project.tags.set([tags[name] for name in data["tags"]])
            project.barangays.set([barangays["Poblacion"], random.choice(list(barangays.values()))])

            for progress in data["progress"]:
                Update.objects.create(project=project, remarks=f"Work is {progress}% done.", progress=progress)
                project.status, project.progress = derive_from_update_progress(progress)
            project.save()

            Comment.objects.create(project=project, user=resident, content="Salamat po sa proyekto!")
            Reaction.objects.get_or_create(project=project, user=resident)
            self.stdout.write(f"Created project: {project.title} ({project.status}, {project.progress}%)")

        self.stdout.write(self.style.SUCCESS("✅ Seeding complete."))
