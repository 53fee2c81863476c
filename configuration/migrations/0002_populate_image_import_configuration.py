from django.db import migrations


def populate_configuration(apps, schema_editor):
    Configuration = apps.get_model("configuration", "Configuration")

    initial_data = [
        {
            "key": "image_auto_import",
            "data_type": "boolean",
            "value": "true",
            "description": "Import remote images automatically when a document of an eligible post type is saved with the publish status.",
        },
        {
            "key": "image_import_post_types",
            "data_type": "json",
            "value": '["post", "page"]',
            "description": "JSON list of the post types whose documents are scanned for remote images.",
        },
        {
            "key": "image_processing_mode",
            "data_type": "text",
            "value": "background",
            "description": "'background' queues a task after the document is saved. 'immediate' imports the images before the save completes.",
        },
        {
            "key": "first_image_as_featured",
            "data_type": "boolean",
            "value": "false",
            "description": "Use the first imported image as the document's primary image when it does not already have one.",
        },
        {
            "key": "image_origin_prefix",
            "data_type": "text",
            "value": "https://koala.sh/api/image/",
            "description": "Only images whose URL starts with this prefix are imported.",
        },
        {
            "key": "koala_connection",
            "data_type": "json",
            "value": "{}",
            "description": "Connection details sent by Koala when the site was connected. Empty when disconnected.",
        },
    ]

    for entry in initial_data:
        Configuration.objects.update_or_create(key=entry["key"], defaults=entry)


def revert_populate_configuration(apps, schema_editor):
    # The rows may have been edited since, so they are left in place
    pass


class Migration(migrations.Migration):

    dependencies = [
        ("configuration", "0001_initial"),
    ]

    operations = [
        migrations.RunPython(populate_configuration, revert_populate_configuration),
    ]
