import itertools
from decimal import Decimal
from functools import reduce

from django.test import SimpleTestCase, TestCase
from rest_framework.exceptions import ValidationError

from core.models import Barangay, Tag
from projects.models import Project
from projects.query import (
    RetrievalSpec,
    build_media_query,
    build_project_query,
    build_update_query,
    membership_fragment,
    range_fragment,
    search_fragment,
    sort_fragment,
    status_fragment,
    PROJECT_SORT_FIELDS,
)
from users.models import User


class ProjectQueryBuilderTests(SimpleTestCase):
    def filters(self, spec):
        return dict(spec.filters)

    def test_defaults(self):
        spec = build_project_query({})
        self.assertEqual(spec.filters, ())
        self.assertEqual(spec.ordering, ("-created_at",))
        self.assertEqual((spec.offset, spec.limit), (0, 10))
        self.assertEqual(set(spec.prefetch), {"tags", "barangays", "media"})
        self.assertTrue(spec.count_comments)

    def test_search_matches_title_substring(self):
        spec = build_project_query({"search": "canal"})
        self.assertEqual(self.filters(spec)["title__icontains"], "canal")

    def test_tags_and_barangays_become_membership_filters(self):
        spec = build_project_query({"tags": "3, 1", "barangays": "2"})
        filters = self.filters(spec)
        self.assertEqual(filters["tags__id__in"], (1, 3))
        self.assertEqual(filters["barangays__id__in"], (2,))
        self.assertTrue(spec.distinct)

    def test_invalid_id_list_is_rejected(self):
        with self.assertRaises(ValidationError):
            build_project_query({"tags": "1,abc"})

    def test_status_filter(self):
        spec = build_project_query({"status": "ongoing"})
        self.assertEqual(self.filters(spec)["status"], "ongoing")

        with self.assertRaises(ValidationError):
            build_project_query({"status": "archived"})

    def test_progress_between_is_inclusive_range(self):
        spec = build_project_query({"progressRange": "10-50"})
        self.assertEqual(self.filters(spec)["progress__range"], (10, 50))

    def test_greater_and_less_than(self):
        spec = build_project_query({"progressRange": ">90", "viewsRange": "<5"})
        filters = self.filters(spec)
        self.assertEqual(filters["progress__gt"], 90)
        self.assertEqual(filters["views__lt"], 5)

    def test_budget_range_uses_decimals(self):
        spec = build_project_query({"budgetRange": "1000.50-20000"})
        self.assertEqual(
            self.filters(spec)["budget__range"],
            (Decimal("1000.50"), Decimal("20000")),
        )

    def test_inverted_range_is_accepted(self):
        spec = build_project_query({"progressRange": "10-5"})
        self.assertEqual(self.filters(spec)["progress__range"], (10, 5))

    def test_malformed_ranges_raise(self):
        for raw in ("abc", "10-", "<", ">x", "1-2-3", "5.5-9"):
            with self.subTest(raw=raw), self.assertRaises(ValidationError):
                build_project_query({"progressRange": raw})

        with self.assertRaises(ValidationError):
            build_project_query({"budgetRange": "<lots"})

    def test_sort_accepts_prefix_and_aliases(self):
        spec = build_project_query({"sort": "-createdAt,title"})
        self.assertEqual(spec.ordering, ("-created_at", "title"))

    def test_unknown_sort_field_is_rejected(self):
        with self.assertRaises(ValidationError):
            build_project_query({"sort": "password"})

    def test_pagination(self):
        spec = build_project_query({"page": "3", "limit": "20"})
        self.assertEqual((spec.offset, spec.limit), (40, 20))

        for params in ({"page": "0"}, {"limit": "x"}, {"limit": "1000"}):
            with self.subTest(params=params), self.assertRaises(ValidationError):
                build_project_query(params)

    def test_blank_params_are_ignored(self):
        self.assertEqual(build_project_query({"search": "  ", "tags": ""}), build_project_query({}))

    def test_fragment_order_does_not_change_result(self):
        fragments = [
            search_fragment("road"),
            membership_fragment("tags", "1,2"),
            status_fragment("pending"),
            sort_fragment("-budget", PROJECT_SORT_FIELDS),
            range_fragment("progress", "10-50", int, "progressRange"),
            range_fragment("views", ">3", int, "viewsRange"),
            RetrievalSpec(offset=10, limit=10),
        ]
        results = {
            reduce(RetrievalSpec.merge, order, RetrievalSpec())
            for order in itertools.permutations(fragments)
        }
        self.assertEqual(len(results), 1)

    def test_conflicting_fragments_do_not_merge(self):
        with self.assertRaises(ValueError):
            RetrievalSpec(ordering=("title",)).merge(RetrievalSpec(ordering=("-title",)))

    def test_update_and_media_defaults(self):
        self.assertEqual(build_update_query({}).ordering, ("created_at",))
        self.assertEqual(build_media_query({}).ordering, ("-created_at",))
        self.assertEqual(build_update_query({"sort": "-progress"}).ordering, ("-progress",))


class ProjectQueryExecutionTests(TestCase):
    def setUp(self):
        self.owner = User.objects.create_user(username="owner", password="pass", role="admin")
        self.tag_roads = Tag.objects.create(name="roads")
        self.tag_health = Tag.objects.create(name="health")
        self.brgy = Barangay.objects.create(name="Poblacion")

        self.low = Project.objects.create(title="Road Repair", progress=5, views=2, budget=Decimal("1000"), created_by=self.owner)
        self.mid = Project.objects.create(title="Clinic", progress=40, views=20, budget=Decimal("5000"), created_by=self.owner)
        self.high = Project.objects.create(title="Road Lights", progress=95, views=50, budget=Decimal("9000"), created_by=self.owner)

        self.low.tags.set([self.tag_roads])
        self.high.tags.set([self.tag_roads, self.tag_health])
        self.mid.tags.set([self.tag_health])
        self.high.barangays.set([self.brgy])

    def run_query(self, params):
        spec = build_project_query(params)
        return spec, list(spec.apply(Project.objects.all()))

    def ids(self, projects):
        return {project.id for project in projects}

    def test_progress_between(self):
        _, projects = self.run_query({"progressRange": "10-50"})
        self.assertEqual(self.ids(projects), {self.mid.id})

    def test_progress_greater_than(self):
        _, projects = self.run_query({"progressRange": ">90"})
        self.assertEqual(self.ids(projects), {self.high.id})

    def test_inverted_range_matches_nothing(self):
        spec, projects = self.run_query({"progressRange": "50-10"})
        self.assertEqual(projects, [])
        self.assertEqual(spec.count(Project.objects.all()), 0)

    def test_tag_membership_has_no_duplicates(self):
        spec, projects = self.run_query({"tags": f"{self.tag_roads.id},{self.tag_health.id}"})
        self.assertEqual(len(projects), 3)
        self.assertEqual(spec.count(Project.objects.all()), 3)

    def test_search_and_barangay(self):
        _, projects = self.run_query({"search": "road", "barangays": str(self.brgy.id)})
        self.assertEqual(self.ids(projects), {self.high.id})

    def test_sort_and_paginate(self):
        _, projects = self.run_query({"sort": "-budget", "limit": "2"})
        self.assertEqual([p.id for p in projects], [self.high.id, self.mid.id])

        _, projects = self.run_query({"sort": "-budget", "limit": "2", "page": "2"})
        self.assertEqual([p.id for p in projects], [self.low.id])

    def test_comment_count_is_annotated(self):
        _, projects = self.run_query({})
        self.assertTrue(all(p.comment_count == 0 for p in projects))
