from flask_wtf import FlaskForm
from wtforms import SelectField, BooleanField, TextAreaField, StringField, FloatField, SubmitField
from wtforms.fields import DateTimeLocalField
from wtforms.validators import DataRequired, NumberRange, Optional, Length


class OrderForm(FlaskForm):
    customer_id = SelectField('Customer', coerce=int, validators=[DataRequired()])
    clothes = BooleanField('Clothes')
    blankets_light = BooleanField('Light Blankets')
    blankets_thick = BooleanField('Thick Blankets')
    expected_pickup_date = DateTimeLocalField('Expected pickup', format='%Y-%m-%dT%H:%M', validators=[Optional()])
    order_id = StringField('Order ID', validators=[Optional(), Length(max=32)])
    notes = TextAreaField('Notes', validators=[Optional()])
    submit = SubmitField('Create Order')

    def services(self):
        return {
            'clothes': self.clothes.data,
            'blankets_light': self.blankets_light.data,
            'blankets_thick': self.blankets_thick.data,
        }


class StatusForm(FlaskForm):
    status = SelectField('Status', choices=[
        ('in-progress', 'Start Processing'),
        ('ready', 'Mark as Ready'),
        ('completed', 'Mark Completed'),
        ('cancelled', 'Cancel Laundry'),
    ], validators=[DataRequired()])
    clothes_weight = FloatField('Clothes (kg)', validators=[Optional(), NumberRange(min=0)])
    blankets_light_weight = FloatField('Light Blankets (kg)', validators=[Optional(), NumberRange(min=0)])
    blankets_thick_weight = FloatField('Thick Blankets (kg)', validators=[Optional(), NumberRange(min=0)])
    cancellation_reason = StringField('Cancellation reason', validators=[Optional(), Length(max=255)])
    mark_paid = BooleanField('Mark as paid')
    submit = SubmitField('Update')

    def weights(self):
        return {
            'clothes': self.clothes_weight.data,
            'blankets_light': self.blankets_light_weight.data,
            'blankets_thick': self.blankets_thick_weight.data,
        }
