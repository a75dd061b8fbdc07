import boto3
from typing import Optional, Dict, Any, List
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError
from snapvault.settings import settings
import logging

log = logging.getLogger(__name__)

# -------------------------
# DynamoDB Service
# -------------------------
class DynamoDBService:
    def __init__(self):
        session = boto3.session.Session(region_name=settings.aws_region)
        kwargs = {
            "aws_access_key_id": settings.aws_access_key_id,
            "aws_secret_access_key": settings.aws_secret_access_key,
        }
        if settings.aws_endpoint_url:
            kwargs["endpoint_url"] = settings.aws_endpoint_url

        self.resource = session.resource("dynamodb", **kwargs)
        log.info("Initialized DynamoDB resource")

        # Ensure table exists at initialization
        self.ensure_table()

    @property
    def table(self):
        return self.resource.Table(settings.dynamodb_table)

    # Refer here: https://boto3.amazonaws.com/v1/documentation/api/latest/reference/services/dynamodb/client/create_table.html
    def ensure_table(self):
        try:
            self.table.load()
        except ClientError:
            table = self.resource.create_table(
                TableName=settings.dynamodb_table,
                KeySchema=[
                    {"AttributeName": "userId", "KeyType": "HASH"},
                    {"AttributeName": "imageId", "KeyType": "RANGE"},
                ],
                AttributeDefinitions=[
                    {"AttributeName": "userId", "AttributeType": "S"},
                    {"AttributeName": "imageId", "AttributeType": "S"},
                ],
                BillingMode="PAY_PER_REQUEST",
            )
            table.wait_until_exists()
            log.info("Created table %s", settings.dynamodb_table)

    def put_metadata_if_absent(self, item: Dict[str, Any]) -> bool:
        """Conditional insert. Returns False when the key already exists."""
        try:
            self.table.put_item(
                Item=item,
                ConditionExpression="attribute_not_exists(imageId)",
            )
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                log.info("Metadata already exists for %s", item.get("imageId"))
                return False
            raise
        log.debug("Inserted metadata %s", item.get("imageId"))
        return True

    def get_metadata(self, user_id: str, image_id: str) -> Optional[Dict[str, Any]]:
        resp = self.table.get_item(Key={"userId": user_id, "imageId": image_id})
        return resp.get("Item")

    def delete_metadata(self, user_id: str, image_id: str):
        self.table.delete_item(Key={"userId": user_id, "imageId": image_id})
        log.debug("Deleted metadata %s", image_id)

    def query_by_owner(
        self,
        user_id: str,
        limit: int = 50,
        exclusive_start_key: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """One page of the owner's items plus the key to resume from."""
        query_kwargs = {
            "KeyConditionExpression": Key("userId").eq(user_id),
            "Limit": limit,
        }
        if exclusive_start_key:
            query_kwargs["ExclusiveStartKey"] = exclusive_start_key
        resp = self.table.query(**query_kwargs)
        return {"Items": resp.get("Items", []), "LastEvaluatedKey": resp.get("LastEvaluatedKey")}

    def scan_metadata(
        self,
        tag: Optional[str] = None,
        user_id: Optional[str] = None,
        limit: int = 50,
        exclusive_start_key: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """Scan with an optional tag containment / owner filter.

        DynamoDB applies Limit before the filter, so pages are read until
        ``limit`` matches are collected or the table is exhausted.
        """
        scan_kwargs = {}
        filters = None
        if tag:
            filters = Attr("tags").contains(tag)
        if user_id:
            cond = Attr("userId").eq(user_id)
            filters = cond if filters is None else filters & cond
        if filters is not None:
            scan_kwargs["FilterExpression"] = filters

        items: List[Dict[str, Any]] = []
        start_key = exclusive_start_key
        while True:
            scan_kwargs["Limit"] = limit - len(items)
            if start_key:
                scan_kwargs["ExclusiveStartKey"] = start_key
            resp = self.table.scan(**scan_kwargs)
            items.extend(resp.get("Items", []))
            start_key = resp.get("LastEvaluatedKey")
            if not start_key or len(items) >= limit:
                break
        return {"Items": items, "LastEvaluatedKey": start_key}

    def close(self):
        log.info("Closed DynamoDB resource")
