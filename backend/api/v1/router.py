"""API v1 router, mounted under settings.API_V1_PREFIX by app.main."""

from fastapi import APIRouter

from api.routes import actions, creators, executions, health, interventions, templates, triggers

api_v1_router = APIRouter()

api_v1_router.include_router(health.router, tags=["Health"])

# (router, prefix, tag)
_ROUTES = [
    (templates.router, "/templates", "Templates"),
    (creators.router, "/creators", "Creators"),
    # send_email bodies
    (creators.message_templates_router, "/message-templates", "Message Templates"),
    (triggers.router, "/triggers", "Triggers"),
    (executions.router, "/executions", "Executions"),
    (interventions.router, "/interventions", "Interventions"),
    (actions.router, "/actions", "Actions"),
]

for router, prefix, tag in _ROUTES:
    api_v1_router.include_router(router, prefix=prefix, tags=[tag])
