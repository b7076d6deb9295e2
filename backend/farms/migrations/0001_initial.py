# Generated manually

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Farm',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=255)),
                ('location', models.CharField(max_length=255)),
                ('latitude', models.DecimalField(blank=True, decimal_places=6, max_digits=9, null=True)),
                ('longitude', models.DecimalField(blank=True, decimal_places=6, max_digits=9, null=True)),
                ('size_hectares', models.DecimalField(decimal_places=2, max_digits=10)),
                ('elevation', models.FloatField(blank=True, help_text='Elevation in metres', null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('owner', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='farms', to=settings.AUTH_USER_MODEL)),
            ],
        ),
        migrations.CreateModel(
            name='MaizeVariety',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=100, unique=True)),
                ('maturity_days', models.PositiveIntegerField()),
                ('optimal_temperature_min', models.FloatField(blank=True, null=True)),
                ('optimal_temperature_max', models.FloatField(blank=True, null=True)),
                ('drought_resistant', models.BooleanField(default=False)),
                ('disease_resistance', models.CharField(blank=True, max_length=255)),
                ('description', models.TextField(blank=True)),
                ('average_yield_tons_per_hectare', models.FloatField(blank=True, help_text='Typical yield for this variety (t/ha)', null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'ordering': ['name'],
                'verbose_name_plural': 'Maize varieties',
            },
        ),
        migrations.CreateModel(
            name='SoilSample',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('sample_date', models.DateField()),
                ('soil_type', models.CharField(blank=True, max_length=100)),
                ('ph_level', models.FloatField(blank=True, null=True)),
                ('organic_matter_percentage', models.FloatField(blank=True, null=True)),
                ('nitrogen_content', models.FloatField(blank=True, null=True)),
                ('phosphorus_content', models.FloatField(blank=True, null=True)),
                ('potassium_content', models.FloatField(blank=True, null=True)),
                ('moisture_content', models.FloatField(blank=True, help_text='Soil moisture (%)', null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('farm', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='soil_samples', to='farms.farm')),
            ],
            options={
                'ordering': ['-sample_date'],
            },
        ),
        migrations.CreateModel(
            name='PlantingSession',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('planting_date', models.DateField()),
                ('expected_harvest_date', models.DateField(blank=True, null=True)),
                ('area_planted_hectares', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('farm', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='planting_sessions', to='farms.farm')),
                ('variety', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='planting_sessions', to='farms.maizevariety')),
            ],
            options={
                'ordering': ['-planting_date'],
            },
        ),
        migrations.CreateModel(
            name='WeatherObservation',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('date', models.DateField()),
                ('min_temperature', models.FloatField(blank=True, null=True)),
                ('max_temperature', models.FloatField(blank=True, null=True)),
                ('average_temperature', models.FloatField(blank=True, null=True)),
                ('rainfall_mm', models.FloatField(blank=True, null=True)),
                ('humidity_percentage', models.FloatField(blank=True, null=True)),
                ('wind_speed_kmh', models.FloatField(blank=True, null=True)),
                ('solar_radiation', models.FloatField(blank=True, null=True)),
                ('source', models.CharField(default='manual', max_length=50)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('farm', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='weather_observations', to='farms.farm')),
            ],
            options={
                'ordering': ['-date'],
                'unique_together': {('farm', 'date')},
            },
        ),
        migrations.CreateModel(
            name='YieldHistory',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('harvest_date', models.DateField()),
                ('yield_tons_per_hectare', models.FloatField()),
                ('quality_rating', models.CharField(blank=True, max_length=20)),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('planting_session', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='yield_history', to='farms.plantingsession')),
            ],
            options={
                'ordering': ['-harvest_date'],
                'verbose_name_plural': 'Yield histories',
            },
        ),
    ]
