# Generated manually

from django.db import migrations

# name, maturity days, optimal min, optimal max, drought resistant, disease resistance, description
DEFAULT_VARIETIES = [
    ("ZM 523", 120, 18.0, 30.0, True, "Gray Leaf Spot, Northern Corn Leaf Blight",
     "High-yielding drought-tolerant variety suitable for medium to low rainfall areas"),
    ("ZM 625", 125, 20.0, 32.0, False, "Maize Streak Virus, Common Rust",
     "High-yielding variety for high potential areas with good rainfall"),
    ("ZM 309", 90, 18.0, 28.0, True, "Gray Leaf Spot",
     "Early maturing drought-tolerant variety for short season areas"),
    ("ZM 421", 105, 19.0, 29.0, False, "Northern Corn Leaf Blight, Common Rust",
     "Medium-season variety with good adaptability to various conditions"),
    ("ZM 701", 140, 20.0, 33.0, False, "Maize Streak Virus, Gray Leaf Spot",
     "Late maturing high-yielding variety for irrigated conditions"),
    ("PAN 4M-19", 115, 18.0, 30.0, True, "Gray Leaf Spot, Turcicum Leaf Blight",
     "Commercial hybrid with excellent drought tolerance and disease resistance"),
    ("SC Duma 43", 130, 19.0, 31.0, False, "Northern Corn Leaf Blight, Common Rust",
     "High-yielding hybrid suitable for commercial production"),
    ("ZM 607", 100, 17.0, 28.0, True, "Gray Leaf Spot, Maize Streak Virus",
     "Early to medium maturing drought-tolerant variety"),
    ("Pioneer 30G19", 118, 20.0, 32.0, True, "Gray Leaf Spot, Northern Corn Leaf Blight, Common Rust",
     "Premium hybrid with excellent stress tolerance and yield potential"),
    ("Dekalb DKC 80-40", 135, 21.0, 34.0, False, "Northern Corn Leaf Blight, Southern Rust",
     "Late season hybrid for high-yield potential under optimal conditions"),
]


def seed_varieties(apps, schema_editor):
    MaizeVariety = apps.get_model('farms', 'MaizeVariety')
    for name, maturity, temp_min, temp_max, drought, disease, description in DEFAULT_VARIETIES:
        MaizeVariety.objects.get_or_create(
            name=name,
            defaults={
                'maturity_days': maturity,
                'optimal_temperature_min': temp_min,
                'optimal_temperature_max': temp_max,
                'drought_resistant': drought,
                'disease_resistance': disease,
                'description': description,
            },
        )


def remove_varieties(apps, schema_editor):
    MaizeVariety = apps.get_model('farms', 'MaizeVariety')
    MaizeVariety.objects.filter(name__in=[v[0] for v in DEFAULT_VARIETIES]).delete()


class Migration(migrations.Migration):

    dependencies = [
        ('farms', '0001_initial'),
    ]

    operations = [
        migrations.RunPython(seed_varieties, remove_varieties),
    ]
