"""Seed a demo brand: the default onboarding workflow, a welcome message
template and one creator. Safe to run repeatedly.

Run: python -m scripts.seed
Env: SEED_BRAND_ID (default demo-brand), SEED_CREATOR_EMAIL
"""

import asyncio
import os
import sys

# Ensure backend/ is importable when run as a script
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


async def _find(db, model, **criteria):
    from sqlalchemy import select

    result = await db.execute(select(model).filter_by(**criteria))
    return result.scalars().first()


async def seed():
    from db.database import AsyncSessionLocal, init_db
    from db.models import Creator, MessageTemplate, WorkflowTemplate
    from services.creator_service import CreatorService, MessageTemplateService
    from services.template_service import DEFAULT_ONBOARDING_NAME, TemplateService

    brand_id = os.environ.get("SEED_BRAND_ID", "demo-brand")
    creator_email = os.environ.get("SEED_CREATOR_EMAIL", "ana@example.com")

    await init_db()

    async with AsyncSessionLocal() as db:
        template = await _find(db, WorkflowTemplate, brand_id=brand_id, name=DEFAULT_ONBOARDING_NAME)
        if template is None:
            template = await TemplateService(db).create_default_onboarding_template(brand_id)
            print(f"[seed] Created workflow: {template.name} ({template.id})")
        else:
            print(f"[seed] Workflow exists: {template.name}")

        welcome = await _find(db, MessageTemplate, brand_id=brand_id, name="Creator Welcome")
        if welcome is None:
            welcome = await MessageTemplateService(db).create_message_template(
                brand_id=brand_id,
                name="Creator Welcome",
                subject="Welcome to the program, {creator_name}!",
                content=(
                    "Hi {creator_name},\n\n"
                    "Thanks for joining us. We loved your work on {creator_instagram} "
                    "and will be in touch about your first script soon."
                ),
            )
            print(f"[seed] Created message template: {welcome.name} ({welcome.id})")
        else:
            print(f"[seed] Message template exists: {welcome.name}")

        creator = await _find(db, Creator, brand_id=brand_id, email=creator_email)
        if creator is None:
            creator = await CreatorService(db).create_creator(
                brand_id=brand_id,
                name="Ana Lima",
                email=creator_email,
                instagram_handle="@ana.creates",
                status="New",
            )
            print(f"[seed] Created creator: {creator.name} ({creator.id})")
        else:
            print(f"[seed] Creator exists: {creator.name}")

        await db.commit()
        print(f"[seed] Brand {brand_id} seeded")


if __name__ == "__main__":
    asyncio.run(seed())
