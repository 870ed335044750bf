"""
Rule listing endpoint.
"""

from aiohttp import web

from tributary.service.api.handlers import BaseHandler


class RulesHandler(BaseHandler):
    """Handler for registered rules and their latest evaluations."""

    async def list(self, request: web.Request) -> web.Response:
        """
        GET /api/v1/rules
        """
        engine = self.context.rules
        rules = []
        for rule in engine.rules:
            evaluation = engine.last_evaluations.get(rule.name)
            rules.append(
                {
                    "name": rule.name,
                    "description": rule.description,
                    "every_s": rule.every_s,
                    "last_evaluation": evaluation.to_dict() if evaluation else None,
                }
            )
        return await self.json_response({"rules": rules, "total": len(rules)}, request=request)
