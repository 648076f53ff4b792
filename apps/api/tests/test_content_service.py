import unittest

from app.core.cache import TTLCache
from app.domain.drills import DrillCreateRequest
from app.services.content_service import ContentService
from app.services.repositories import InMemoryContentRepository


class DrillListingCacheTests(unittest.TestCase):
    def setUp(self) -> None:
        self.service = ContentService(InMemoryContentRepository(), cache=TTLCache())
        request = DrillCreateRequest.model_validate(
            {
                "userId": "learner-1",
                "title": "Loops",
                "content": [{"type": "theory", "value": "A for loop walks an iterable."}],
            }
        )
        self.drill = self.service.create_drill(request)

    def test_mutating_a_listing_does_not_touch_the_cache(self) -> None:
        first = self.service.list_drills("learner-1")
        first.clear()

        cached = self.service.list_drills("learner-1")
        cached.append(self.drill)

        self.assertEqual([d.id for d in self.service.list_drills("learner-1")], [self.drill.id])

    def test_listing_is_refreshed_after_delete(self) -> None:
        self.assertEqual(len(self.service.list_drills("learner-1")), 1)

        self.service.delete_drill(self.drill.id)

        self.assertEqual(self.service.list_drills("learner-1"), [])


if __name__ == "__main__":
    unittest.main()
