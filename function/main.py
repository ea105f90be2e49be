def main(event, context):
    print(f"Triggered by {context.event_id}")
