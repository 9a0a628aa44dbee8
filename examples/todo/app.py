"""Todo example: a composite-key model served over FastAPI.

Run against DynamoDB Local:

    DYNAMODB_ENDPOINT=http://localhost:8000 DYNAMODB_TABLE_NAME=todos \
        python examples/todo/scripts.py create
    uvicorn app:app --app-dir examples/todo --port 8080
"""

import os
from typing import Literal

import boto3
from fastapi import FastAPI
from pydantic import BaseModel as Schema

from dmvc import BaseController, BaseModel, ControllerOptions, DynamoDBAdapter, IndexSpec


class TodoSchema(Schema):
    todo: str
    title: str
    completed: bool = False
    type: Literal["todo"] = "todo"


# Composite key; type is defaulted so clients only send the todo id
class TodoKeySchema(Schema):
    todo: str
    type: Literal["todo"] = "todo"


class TodoModel(BaseModel):
    schema = TodoSchema
    key_schema = TodoKeySchema

    def create_adapter(self):
        return DynamoDBAdapter(
            "Todo",
            pk_composite=["type"],
            sk_composite=["todo"],
            indexes={
                "byTitle": IndexSpec(
                    index_name="gsi1pk-gsi1sk-index",
                    pk_field="gsi1pk",
                    pk_composite=["title"],
                    sk_field="gsi1sk",
                    sk_composite=["todo"],
                ),
                "byCompleted": IndexSpec(
                    index_name="gsi2pk-gsi2sk-index",
                    pk_field="gsi2pk",
                    pk_composite=["completed"],
                    sk_field="gsi2sk",
                    sk_composite=["todo"],
                ),
            },
        )


endpoint = os.environ.get("DYNAMODB_ENDPOINT")
resource = boto3.resource(
    "dynamodb",
    region_name="us-east-1",
    endpoint_url=endpoint,
    aws_access_key_id="local" if endpoint else None,
    aws_secret_access_key="local" if endpoint else None,
)
BaseModel.configure(client=resource, table=os.environ.get("DYNAMODB_TABLE_NAME", "todos"))

app = FastAPI(title="Todo API")
BaseController.register(app, ControllerOptions(model=TodoModel, base_path="/todos"))


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="127.0.0.1", port=int(os.environ.get("PORT", "8080")))
