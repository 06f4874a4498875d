#!/usr/bin/env python3
"""
Example script demonstrating the Statful client in dry-run mode.
Every metric is logged instead of being sent.
"""
import logging
import random
import time

from statful import AGG_AVG, FREQ_30S, Statful, new_event
from statful.sender import ChannelSender

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')


def main():
    """Main function to run the example."""
    client = Statful(
        sender=ChannelSender(),
        dry_run=True,
        flush_size=10,
        flush_interval=1,
        tags={'client': 'python'}
    )

    for i in range(25):
        client.counter('requests', 1, tags={'status': random.choice(['200', '404', '500'])})
        client.timer('response_time', random.uniform(5, 50))
        client.gauge('queue_size', i)
        time.sleep(0.05)

    client.gauge_aggregated('cpu_load', 0.42, None, AGG_AVG, FREQ_30S)
    client.event(new_event('user-1', 'game-1', 'operator-1', 'aggregator-1', 'bet', 5000, 'EUR'))

    print(f"There are {client.get_buffered_count()} records in the buffer.")
    client.close()
    print("Example completed.")


if __name__ == "__main__":
    main()
