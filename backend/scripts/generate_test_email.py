#!/usr/bin/env python3
"""Test email generator for DocuSync intake.

Builds an email with document attachments from a registered client sender
and either prints it, sends it to the SMTP intake server, or posts it as
canonical JSON to the email webhook.

Usage:
    # Print MIME email to stdout
    python scripts/generate_test_email.py --from jane@acme.example \
        --subject "March invoice" --attachment invoice.pdf

    # Send to the SMTP intake server
    python scripts/generate_test_email.py --from jane@acme.example \
        --attachment invoice.pdf --send --smtp-host localhost --smtp-port 2525

    # Post to the email webhook
    python scripts/generate_test_email.py --from jane@acme.example \
        --generate-sample statement.csv \
        --post http://localhost:8000/api/v1/webhooks/email
"""

import argparse
import base64
import mimetypes
import os
import smtplib
import sys
from email import encoders
from email.mime.base import MIMEBase
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import httpx

SAMPLE_CSV = """Account,Period,Balance
1000,2026-03,12500.00
2000,2026-03,-4300.00
"""


def load_attachments(
    paths: Optional[List[str]],
    samples: Optional[List[str]],
) -> List[Tuple[str, str, bytes]]:
    """Collect (filename, content type, bytes) for files and generated samples."""
    attachments = []

    for filepath in paths or []:
        path = Path(filepath)
        if not path.exists():
            print(f"WARNING: Attachment not found: {filepath}", file=sys.stderr)
            continue
        mime_type, _ = mimetypes.guess_type(filepath)
        attachments.append((path.name, mime_type or 'application/octet-stream', path.read_bytes()))

    for filename in samples or []:
        if Path(filename).suffix.lower() == '.csv':
            attachments.append((filename, 'text/csv', SAMPLE_CSV.encode('utf-8')))
        else:
            content = f"Sample document {filename}\n".encode('utf-8')
            attachments.append((filename, 'text/plain', content))

    return attachments


def create_email(
    from_email: str,
    to_email: str,
    subject: str,
    attachments: List[Tuple[str, str, bytes]],
) -> MIMEMultipart:
    msg = MIMEMultipart()
    msg['From'] = from_email
    msg['To'] = to_email
    msg['Subject'] = subject
    msg['Message-ID'] = f"<test-{os.urandom(8).hex()}@docsync-test>"
    msg.attach(MIMEText("Please find the requested documents attached.", 'plain'))

    for filename, mime_type, content in attachments:
        maintype, subtype = mime_type.split('/', 1)
        part = MIMEBase(maintype, subtype)
        part.set_payload(content)
        encoders.encode_base64(part)
        part.add_header('Content-Disposition', f'attachment; filename="{filename}"')
        msg.attach(part)
        print(f"Attached: {filename} ({len(content)} bytes)", file=sys.stderr)

    return msg


def to_webhook_payload(
    from_email: str,
    subject: str,
    attachments: List[Tuple[str, str, bytes]],
) -> Dict:
    """Canonical message JSON accepted by POST /api/v1/webhooks/email."""
    return {
        "from": from_email,
        "subject": subject,
        "attachments": [
            {
                "fileName": filename,
                "contentType": mime_type,
                "content": base64.b64encode(content).decode('ascii'),
            }
            for filename, mime_type, content in attachments
        ],
    }


def send_email(msg: MIMEMultipart, smtp_host: str, smtp_port: int):
    try:
        with smtplib.SMTP(smtp_host, smtp_port) as smtp:
            smtp.send_message(msg)
    except (smtplib.SMTPException, OSError) as e:
        print(f"ERROR sending email: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"Email sent to {msg['To']} via {smtp_host}:{smtp_port}", file=sys.stderr)


def post_email(url: str, payload: Dict):
    try:
        response = httpx.post(url, json=payload, timeout=30.0)
    except httpx.HTTPError as e:
        print(f"ERROR posting email: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"{response.status_code} {response.text}", file=sys.stderr)
    if response.status_code != 200:
        sys.exit(1)


def main():
    parser = argparse.ArgumentParser(
        description='Generate test emails for DocuSync intake',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    parser.add_argument('--from', dest='from_email', required=True,
                        help='Sender address (must be registered for a client)')
    parser.add_argument('--to', dest='to_email', default='documents@docsync.local',
                        help='Intake mailbox (default: documents@docsync.local)')
    parser.add_argument('--subject', default='Requested documents', help='Email subject')
    parser.add_argument('--attachment', action='append',
                        help='File to attach (can be specified multiple times)')
    parser.add_argument('--generate-sample', action='append', metavar='FILENAME',
                        help='Generate a small sample attachment (.csv or text)')

    parser.add_argument('--send', action='store_true', help='Send via SMTP')
    parser.add_argument('--smtp-host', default='localhost', help='SMTP host (default: localhost)')
    parser.add_argument('--smtp-port', type=int, default=2525, help='SMTP port (default: 2525)')
    parser.add_argument('--post', metavar='URL', help='Post canonical JSON to the email webhook')

    args = parser.parse_args()

    attachments = load_attachments(args.attachment, args.generate_sample)
    if not attachments:
        print("WARNING: email has no attachments; nothing will be filed", file=sys.stderr)

    if args.post:
        post_email(args.post, to_webhook_payload(args.from_email, args.subject, attachments))
        return

    msg = create_email(args.from_email, args.to_email, args.subject, attachments)
    if args.send:
        send_email(msg, args.smtp_host, args.smtp_port)
    else:
        print(msg.as_string())


if __name__ == '__main__':
    main()
