"""Lambda entry point for Discord Advent Calendar Bot."""

import json
import os
from datetime import UTC, datetime
from typing import Any

import boto3
from botocore.exceptions import ClientError

from .config import Config
from .logging_config import create_execution_logger, setup_structured_logging
from .runner import run_once

NAMESPACE = "Discord-AdventCalendar-Bot"

# Setup structured logging
setup_structured_logging(os.getenv("LOG_LEVEL", "INFO"))


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """
    Dispatch an invocation: HTTP requests get the health surface, anything
    else (EventBridge schedule, manual invoke) runs the announcement job.

    Args:
        event: Lambda event data
        context: Lambda context object

    Returns:
        Response dictionary with status code and body
    """
    event = event or {}
    if "rawPath" in event or "path" in event:
        return handle_http(event)
    return handle_scheduled(event, context)


def handle_http(event: dict[str, Any]) -> dict[str, Any]:
    """Serve the liveness endpoint."""
    path = event.get("rawPath") or event.get("path") or "/"
    if path == "/health":
        return {
            "statusCode": 200,
            "headers": {"Content-Type": "text/plain"},
            "body": "ok",
        }

    return {
        "statusCode": 404,
        "headers": {"Content-Type": "text/plain"},
        "body": "Not Found",
    }


def handle_scheduled(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """Run the job once for the current instant and report the result."""
    execution_id = f"lambda_{datetime.now(UTC).strftime('%Y%m%d_%H%M%S_%f')}"
    main_logger = create_execution_logger("main", execution_id)

    main_logger.log_execution_start(
        lambda_request_id=getattr(context, "aws_request_id", "unknown"),
        lambda_function_name=getattr(context, "function_name", "unknown"),
    )

    metrics = {
        "items_matched": 0,
        "messages_sent": 0,
        "dry_run": False,
        "errors": [],
    }
    config = None

    try:
        config = Config()
        webhook_url = config.webhook_url
        if not webhook_url and config.webhook_secret_name:
            webhook_url = get_webhook_url(
                config.webhook_secret_name, config.aws_region, execution_id
            )

        bot_config = config.get_bot_config(webhook_url=webhook_url)
        result = run_once(
            bot_config, datetime.now(UTC), execution_id=execution_id
        )

        metrics["items_matched"] = result.count
        metrics["messages_sent"] = result.count if result.sent else 0
        metrics["dry_run"] = result.dry_run

        main_logger.log_metrics(metrics)
        send_cloudwatch_metrics(metrics, config.aws_region, execution_id)
        main_logger.log_execution_end(success=True, metrics=metrics)

        return {
            "statusCode": 200,
            "body": json.dumps(
                {
                    "message": "Discord Advent Calendar Bot execution completed",
                    "execution_id": execution_id,
                    "result": result.to_dict(),
                },
                ensure_ascii=False,
            ),
        }

    except Exception as e:
        error_msg = f"Scheduled run failed: {e}"
        main_logger.error(error_msg, error=str(e))
        metrics["errors"].append(error_msg)

        send_cloudwatch_metrics(
            metrics,
            config.aws_region if config is not None else "us-east-1",
            execution_id,
        )
        main_logger.log_execution_end(success=False, metrics=metrics, error=error_msg)

        return {
            "statusCode": 500,
            "body": json.dumps(
                {
                    "message": "Discord Advent Calendar Bot execution failed",
                    "execution_id": execution_id,
                    "error": error_msg,
                },
                ensure_ascii=False,
            ),
        }


def get_webhook_url(secret_name: str, aws_region: str, execution_id: str) -> str:
    """
    Retrieve the Discord webhook URL from AWS Secrets Manager.

    Supports both plain string and JSON secret formats. The secret value is
    never logged.

    Args:
        secret_name: Name of the secret in Secrets Manager
        aws_region: AWS region for Secrets Manager client
        execution_id: Execution ID for logging context

    Returns:
        Webhook URL

    Raises:
        RuntimeError: If the secret cannot be retrieved or has no usable value
        ValueError: If secret name or region is empty
    """
    secrets_logger = create_execution_logger("secrets_manager", execution_id)

    if not secret_name or not secret_name.strip():
        raise ValueError("Secret name cannot be empty")

    if not aws_region or not aws_region.strip():
        raise ValueError("AWS region cannot be empty")

    try:
        secrets_logger.info(
            f"Retrieving webhook URL from Secrets Manager: {secret_name}"
        )
        secrets_client = boto3.client("secretsmanager", region_name=aws_region)
        response = secrets_client.get_secret_value(SecretId=secret_name)

        secret_value = response.get("SecretString", "")
        if not secret_value or not secret_value.strip():
            raise ValueError(f"Secret {secret_name} contains empty value")

        try:
            secret_data = json.loads(secret_value)
        except json.JSONDecodeError:
            secrets_logger.info("Retrieved webhook URL from plain text secret")
            return secret_value.strip()

        if not isinstance(secret_data, dict):
            raise ValueError(f"JSON secret {secret_name} must be an object")

        for key in ["webhook_url", "discord_webhook_url", "url"]:
            value = secret_data.get(key)
            if isinstance(value, str) and value.strip():
                secrets_logger.info("Retrieved webhook URL from JSON secret")
                return value.strip()

        raise ValueError(f"No webhook URL found in JSON secret {secret_name}")

    except ClientError as e:
        error_code = e.response.get("Error", {}).get("Code", "Unknown")
        secrets_logger.error(
            f"AWS Secrets Manager error retrieving {secret_name}: {error_code}"
        )
        raise RuntimeError(f"Failed to retrieve secret {secret_name}") from e
    except ValueError as e:
        secrets_logger.error(f"Invalid secret format for {secret_name}: {e}")
        raise RuntimeError(f"Invalid secret format for {secret_name}") from e


def send_cloudwatch_metrics(
    metrics: dict[str, Any], aws_region: str, execution_id: str
) -> None:
    """
    Send custom metrics to CloudWatch.

    Args:
        metrics: Dictionary containing execution metrics
        aws_region: AWS region for CloudWatch client
        execution_id: Execution ID for logging context
    """
    metrics_logger = create_execution_logger("cloudwatch_metrics", execution_id)

    try:
        metrics_logger.info("Sending metrics to CloudWatch", metrics=metrics)
        cloudwatch = boto3.client("cloudwatch", region_name=aws_region)

        total_errors = len(metrics["errors"])
        execution_success = total_errors == 0
        status = "Success" if execution_success else "Failure"
        execution_dimension = [{"Name": "ExecutionId", "Value": execution_id}]
        status_dimension = [{"Name": "Status", "Value": status}]

        metric_data = [
            {
                "MetricName": "ItemsMatched",
                "Value": metrics["items_matched"],
                "Unit": "Count",
                "Dimensions": execution_dimension,
            },
            {
                "MetricName": "MessagesSent",
                "Value": metrics["messages_sent"],
                "Unit": "Count",
                "Dimensions": execution_dimension,
            },
            {
                "MetricName": "DryRun",
                "Value": 1 if metrics["dry_run"] else 0,
                "Unit": "Count",
                "Dimensions": execution_dimension,
            },
            {
                "MetricName": "Errors",
                "Value": total_errors,
                "Unit": "Count",
                "Dimensions": execution_dimension,
            },
            {
                "MetricName": "ExecutionSuccess",
                "Value": 1 if execution_success else 0,
                "Unit": "Count",
                "Dimensions": status_dimension,
            },
            {
                "MetricName": "ExecutionFailure",
                "Value": 0 if execution_success else 1,
                "Unit": "Count",
                "Dimensions": status_dimension,
            },
        ]

        cloudwatch.put_metric_data(Namespace=NAMESPACE, MetricData=metric_data)

        metrics_logger.info(
            "Successfully sent metrics to CloudWatch",
            metrics_sent=len(metric_data),
            namespace=NAMESPACE,
            execution_success=execution_success,
        )

    except Exception as e:
        metrics_logger.error(f"Failed to send CloudWatch metrics: {e}", error=str(e))
