"""
Load test for the presale relay.

Senders are read from wallets.csv (column "wallet"); builds are read-only on the
network, so this never broadcasts anything.

Run: locust -f locustfile.py --host http://localhost:3000
"""

import csv
import random

from locust import HttpUser, between, task

wallets = []
with open("wallets.csv") as f:
    for row in csv.DictReader(f):
        wallets.append(row["wallet"])


class PresaleUser(HttpUser):
    wait_time = between(1, 2)

    @task(5)
    def create_transaction(self):
        self.client.post(
            "/api/transactions/create-transaction",
            json={"senderPublicKey": random.choice(wallets), "presaleAmount": random.choice([1, 5, 10])},
        )

    @task
    def health(self):
        self.client.get("/health")
