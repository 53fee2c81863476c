import json

from django.db import models


class Configuration(models.Model):
    class DataType(models.TextChoices):
        TEXT = "text", "Plain text"
        NUMBER = "number", "Number"
        BOOLEAN = "boolean", "Boolean"
        JSON = "json", "JSON"

    key = models.CharField(
        max_length=255,
        unique=True,
        help_text="Unique identifier for the configuration setting",
    )
    data_type = models.CharField(
        max_length=10,
        choices=DataType.choices,
        default=DataType.TEXT,
        help_text="Data type of the value",
    )
    value = models.TextField(help_text="Value of the configuration setting")
    description = models.TextField(
        blank=True, help_text="Optional description of the configuration setting"
    )

    def __str__(self):
        return self.key

    def get_value(self):
        if self.data_type == Configuration.DataType.NUMBER:
            try:
                return int(self.value)
            except ValueError:
                try:
                    return float(self.value)
                except ValueError:
                    return 0
        elif self.data_type == Configuration.DataType.BOOLEAN:
            if self.value.lower() == "true":
                return True
            else:
                return False
        elif self.data_type == Configuration.DataType.JSON:
            return json.loads(self.value)
        else:
            # DataType.TEXT or an unknown type,
            # so just return the value itself
            return self.value

    @classmethod
    def data_type_for(cls, value):
        """
        Pick the data type used to store a Python value
        """
        # bool is a subclass of int, so it has to be checked first
        if isinstance(value, bool):
            return cls.DataType.BOOLEAN
        elif isinstance(value, (int, float)):
            return cls.DataType.NUMBER
        elif isinstance(value, str):
            return cls.DataType.TEXT
        else:
            return cls.DataType.JSON

    @classmethod
    def serialize(cls, value, data_type):
        if data_type == cls.DataType.BOOLEAN:
            return "true" if value else "false"
        elif data_type == cls.DataType.JSON:
            return json.dumps(value)
        else:
            return str(value)
