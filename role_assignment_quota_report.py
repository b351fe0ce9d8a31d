#!/usr/bin/env python3
"""
Role Assignment Quota Report

Reports, for each Azure subscription, how many role assignments exist at
subscription scope against the subscription's role assignment limit.
Runs anywhere DefaultAzureCredential can authenticate, including Azure Cloud Shell.

Usage:
    python3 role_assignment_quota_report.py
    python3 role_assignment_quota_report.py --subscriptions "<id1>,<id2>"
    SUBSCRIPTIONS="<id1> <id2>" DEBUG=1 python3 role_assignment_quota_report.py
"""
import argparse
import logging
import sys

import yaml

from rbac_quota.azure_client import create_client, get_credential
from rbac_quota.config import ConfigError, generate_sample_config, load_config
from rbac_quota.constants import ARM_SCOPE, USAGE_SOURCES
from rbac_quota.report import NoSubscriptionsError, build_report
from rbac_quota.utils import AuthError, print_report, setup_logging

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description='Role Assignment Quota Report')
    parser.add_argument(
        '--subscriptions',
        help='Comma- or space-separated subscription IDs (default: $SUBSCRIPTIONS, else all enabled)'
    )
    parser.add_argument(
        '--debug',
        action='store_true',
        help='Log queries and intermediate values (same as DEBUG=1)'
    )
    parser.add_argument(
        '--parallel-workers',
        dest='parallel_workers',
        type=int,
        help='Number of subscriptions to check in parallel (default: 4, use 1 for serial)'
    )
    parser.add_argument('--timeout', type=float, help='Timeout in seconds for each Azure API call (default: 30)')
    parser.add_argument(
        '--usage-source',
        dest='usage_source',
        choices=USAGE_SOURCES,
        help='Where role assignments are read from (default: graph)'
    )
    parser.add_argument('--log-level', dest='log_level', help='Logging level (default: INFO)')
    parser.add_argument('--config', help='Path to YAML config file')
    parser.add_argument(
        '--generate-config',
        action='store_true',
        help='Print a sample config file and exit'
    )
    parser.add_argument(
        '--no-progress',
        action='store_true',
        help='Disable the progress display'
    )
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)

    if args.generate_config:
        print(generate_sample_config())
        return

    try:
        config = load_config(args)
    except (ConfigError, FileNotFoundError, yaml.YAMLError) as e:
        setup_logging()
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)

    setup_logging(config['log_level'])
    logger.debug(f"Effective configuration: {config}")

    # Get credential
    try:
        credential = get_credential()
        credential.get_token(ARM_SCOPE)
    except Exception as e:
        logger.error(f"Failed to authenticate with Azure: {e}")
        logger.error("Check your Azure credentials are configured correctly (e.g. az login).")
        sys.exit(1)

    client = create_client(credential, config['usage_source'], timeout=config['timeout'])

    try:
        quota_report = build_report(
            client,
            subscription_ids=config['subscriptions'] or None,
            parallel_workers=config['parallel_workers'],
            default_limit=config['default_limit'],
            timeout=config['timeout'],
            show_progress=not args.no_progress,
        )
    except AuthError as e:
        logger.error(f"Authentication/authorization error: {e}")
        logger.error("Check your credentials have subscription read access.")
        sys.exit(1)
    except NoSubscriptionsError as e:
        logger.error(str(e))
        sys.exit(1)
    except Exception as e:
        logger.error(f"Failed to resolve Azure subscriptions: {e}")
        sys.exit(1)

    print_report(quota_report)

    summary = quota_report.summary
    if summary.error:
        logger.warning(f"Role assignment count failed for {summary.error} subscription(s)")


if __name__ == '__main__':
    main()
