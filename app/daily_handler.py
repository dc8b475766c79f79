import json

from aws_lambda_powertools import Logger, Tracer
from aws_lambda_powertools.utilities.typing import LambdaContext

from container import Container
from duty.errors import ConfigurationMissing, NoMembersAvailable


logger = Logger()
tracer = Tracer()

container = Container()


def notify_failure(error: Exception) -> None:
    """Best-effort failure notice in the duty channel."""
    try:
        container.slack_channel().post_text(f"An error occurred while assigning today's duty: {error}")
    except Exception:
        logger.exception("Failed to send failure notification to Slack")


@logger.inject_lambda_context
@tracer.capture_lambda_handler
def lambda_handler(event: dict, context: LambdaContext) -> dict:
    """Daily assignment handler. Triggered by an EventBridge schedule."""
    logger.info("Received event", extra={"event": json.dumps(event, default=str)[:1000]})

    try:
        service = container.duty_service()
    except ConfigurationMissing:
        logger.exception("Configuration is incomplete")
        raise

    force = bool(event.get("force")) if isinstance(event, dict) else False

    try:
        result = service.run_daily(force=force)
    except NoMembersAvailable as e:
        logger.warning("No members available", extra={"error": str(e)})
        return {"statusCode": 400, "body": json.dumps({"message": "No members found"})}
    except Exception as e:
        logger.exception("Daily assignment failed")
        notify_failure(e)
        return {"statusCode": 500, "body": json.dumps({"message": "Failed to process request", "error": str(e)})}

    logger.info("Daily assignment complete", result=result)
    return {"statusCode": 200, "body": json.dumps(result)}
