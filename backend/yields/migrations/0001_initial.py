# Generated manually

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('farms', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='YieldPrediction',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('prediction_date', models.DateField()),
                ('predicted_yield_tons_per_hectare', models.FloatField()),
                ('confidence_percentage', models.FloatField()),
                ('model_version', models.CharField(max_length=20)),
                ('features_used', models.JSONField(default=list)),
                ('factor_breakdown', models.JSONField(blank=True, default=list)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('planting_session', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='predictions', to='farms.plantingsession')),
            ],
            options={
                'ordering': ['prediction_date', 'created_at'],
            },
        ),
        migrations.CreateModel(
            name='Recommendation',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('recommendation_date', models.DateField()),
                ('category', models.CharField(max_length=50)),
                ('title', models.CharField(max_length=200)),
                ('description', models.TextField()),
                ('priority', models.CharField(choices=[('LOW', 'Low'), ('MEDIUM', 'Medium'), ('HIGH', 'High'), ('CRITICAL', 'Critical')], max_length=10)),
                ('confidence', models.FloatField(blank=True, null=True)),
                ('is_viewed', models.BooleanField(default=False)),
                ('is_implemented', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('planting_session', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='recommendations', to='farms.plantingsession')),
            ],
            options={
                'ordering': ['-recommendation_date', 'id'],
            },
        ),
    ]
