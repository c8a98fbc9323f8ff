import pytest

from heritage_whisper.core.database.entities import Story
from heritage_whisper.core.errors import NotFoundError, ValidationFailedError
from heritage_whisper.core.models.io import PhotoTransform, TreasureCreate, TreasureUpdate
from heritage_whisper.server.services.treasures import TreasureService

pytestmark = pytest.mark.asyncio


async def add_story(session, user_id="user-1") -> Story:
    story = Story(user_id=user_id, title="Grandma's kitchen")
    session.add(story)
    await session.commit()
    return story


class TestTreasureService:
    async def test_create_with_linked_story_and_transform(self, session, user):
        story = await add_story(session)
        service = TreasureService(session)

        treasure = await service.create_treasure(
            user,
            TreasureCreate(
                title="Recipe card",
                category="recipe",
                image_url="user-1/recipe.jpg",
                linked_story_id=story.id,
                transform=PhotoTransform(zoom=1.5, position={"x": 10.0, "y": -5.0}),
            ),
        )

        read = service.to_read(treasure)
        assert read.linked_story_id == story.id
        assert read.transform.zoom == 1.5
        assert read.image_url == "user-1/recipe.jpg"

    async def test_blob_image_is_rejected(self, session, user):
        with pytest.raises(ValidationFailedError):
            await TreasureService(session).create_treasure(
                user, TreasureCreate(title="Locket", image_url="blob:http://localhost/1")
            )

    async def test_story_of_another_user_cannot_be_linked(self, session, user):
        with pytest.raises(ValidationFailedError):
            await TreasureService(session).create_treasure(
                user, TreasureCreate(title="Locket", image_url="user-1/l.jpg", linked_story_id="someone-elses")
            )

    async def test_update_ignores_null_required_fields(self, session, user):
        service = TreasureService(session)
        treasure = await service.create_treasure(
            user, TreasureCreate(title="Locket", category="heirloom", image_url="user-1/l.jpg", year=1931)
        )

        updated = await service.update_treasure(
            user, treasure.id, TreasureUpdate(title=None, image_url=None, description="From Aunt Rose", year=None)
        )

        assert updated.title == "Locket"
        assert updated.image_url == "user-1/l.jpg"
        assert updated.description == "From Aunt Rose"
        assert updated.year is None

    async def test_update_can_clear_transform(self, session, user):
        service = TreasureService(session)
        treasure = await service.create_treasure(
            user, TreasureCreate(title="Locket", image_url="user-1/l.jpg", transform=PhotoTransform(zoom=2.0))
        )

        updated = await service.update_treasure(user, treasure.id, TreasureUpdate(transform=None))

        assert updated.get_transform() is None

    async def test_delete_and_missing(self, session, user):
        service = TreasureService(session)
        treasure = await service.create_treasure(user, TreasureCreate(title="Locket", image_url="user-1/l.jpg"))

        await service.delete_treasure(user, treasure.id)

        assert await service.list_treasures(user) == []
        with pytest.raises(NotFoundError):
            await service.get_treasure(user, treasure.id)
