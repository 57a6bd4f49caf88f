#!/usr/bin/env python

"""
    cli_image_lookup.py: A CLI utility for the UbuntuServer20WithNET5 image that allows for:
        * get: reading the AMI id published to SSM Parameter Store
        * verify: checking that the published AMI id matches the image built by the stack
        * plan: printing the order in which the recipe phases run

    Run from the project root: python3 -m client.cli_image_lookup <command>
"""

import argparse
import logging
import sys
import traceback

from client.image_lookup import ImageLookup
from stacks.imagebuilder.components.dotnet import dotnet_recipe
from utils.CdkUtils import CdkUtils

# set logging
logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=logging.INFO
)
logger = logging.getLogger()


def get_image_id(args) -> int:
    ami_id = ImageLookup(region=args.region).get_published_image_id(args.parameter_name)

    print("")
    print("#############################################")
    print(f"Published AMI ID == {ami_id}")
    print("#############################################")
    print("")
    return 0


def verify_image(args) -> int:
    verified = ImageLookup(region=args.region).verify_published_image(args.stack_name)

    print("")
    print("#############################################")
    print(f"Published AMI ID verified == {verified}")
    print("#############################################")
    print("")
    return 0 if verified else 1


def print_plan(args) -> int:
    recipe = dotnet_recipe(CdkUtils.get_project_settings())

    print(f"Recipe {recipe.name} {recipe.version} on {recipe.parent_image}")
    for planned in recipe.execution_plan():
        print(f"{planned.order}. [{planned.instance}] {planned.component}.{planned.phase}")
        for step in planned.steps:
            print(f"     - {step}")
    return 0


def main(args) -> int:

    try:
        return args.func(args)
    except Exception as e:
        traceback.print_exception(type(e), value=e, tb=e.__traceback__)
        logger.error(f"ERROR attempting to {args.command} image: {str(e)}")
        return 1


def build_parser() -> argparse.ArgumentParser:
    settings = CdkUtils.get_project_settings()

    parser = argparse.ArgumentParser(prog='python3 -m client.cli_image_lookup')
    subparsers = parser.add_subparsers(dest='command', required=True)

    get_parser = subparsers.add_parser('get', help='print the published AMI id')
    get_parser.add_argument(
        '--parameter_name',
        help='SSM parameter holding the AMI id',
        type=str,
        default=settings["ssm"]["imageIdParameterName"],
        required=False
    )
    get_parser.set_defaults(func=get_image_id)

    verify_parser = subparsers.add_parser('verify', help='verify the published AMI id against the built image')
    verify_parser.add_argument(
        '--stack_name',
        help='name of the deployed image stack',
        type=str,
        default="UbuntuServer20WithNET5",
        required=False
    )
    verify_parser.set_defaults(func=verify_image)

    for sub_parser in (get_parser, verify_parser):
        sub_parser.add_argument(
            '--region',
            help='AWS Region',
            type=str,
            default="us-east-1",
            required=False
        )

    plan_parser = subparsers.add_parser('plan', help='print the recipe phase execution order')
    plan_parser.set_defaults(func=print_plan)

    return parser


if __name__ == "__main__":
    sys.exit(main(build_parser().parse_args()))
