#!/usr/bin/env python
import argparse
import json

import boto3


def seed_members(table_name: str, members: list[dict]):
    dynamodb = boto3.resource("dynamodb")
    table = dynamodb.Table(table_name)

    with table.batch_writer() as batch:
        for order, member in enumerate(members, start=1):
            item = {
                "memberId": member["memberId"],
                "memberName": member.get("memberName", member["memberId"]),
                "dutyCount": member.get("dutyCount", 0),
                "displayOrder": member.get("displayOrder", order),
            }
            batch.put_item(Item=item)
            print(f"Added: {item['memberId']} ({item['memberName']})")

    print("Done!")


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("--table", required=True)
    parser.add_argument("--members", required=True, help="JSON file with a list of {memberId, memberName} objects")
    args = parser.parse_args()

    with open(args.members) as f:
        seed_members(args.table, json.load(f))
